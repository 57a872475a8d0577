"""Error kinds raised by the directory and the complaint lifecycle.

Every error carries a user-facing ``message`` so a UI can show it inline.
Notification failures are deliberately absent: SMS delivery is best effort
and only ever logged.
"""

from __future__ import annotations


class ComplaintError(Exception):
    """Base class for all errors surfaced to callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(ComplaintError):
    """Input failed a format or required-field check. Nothing was changed."""

    def __init__(self, message: str, row: int | None = None) -> None:
        super().__init__(message)
        self.row = row


class NotAllowed(ComplaintError):
    """The actor may not perform the operation in the complaint's state."""


class NotFound(ComplaintError):
    """An unknown complaint or user id was referenced."""


class PersistenceFailed(ComplaintError):
    """The backend rejected a write; the in-memory change was rolled back."""
