"""Base interface for the interchangeable storage backends."""

from __future__ import annotations

import datetime
import mimetypes
import secrets
from abc import ABC, abstractmethod
from typing import Any, Literal

from ..core.models import Attachment, utcnow

Collection = Literal["users", "complaints", "settings"]

COLLECTIONS: tuple[Collection, ...] = ("users", "complaints", "settings")
SETTINGS_ID = "global_sms_settings"


def attachment_key(name: str, now: datetime.datetime | None = None) -> str:
    """Build a unique storage key ``<millis>_<random>.<ext>`` for ``name``."""
    now = now or utcnow()
    ext = name.rsplit(".", 1)[-1] if "." in name else "bin"
    return f"{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}.{ext}"


def guess_content_type(name: str) -> str:
    return mimetypes.guess_type(name)[0] or "application/octet-stream"


class Backend(ABC):
    """Uniform document store used by the directory and lifecycle engine.

    Documents are plain JSON-compatible ``dict`` objects carrying an ``id``
    key. Failures are logged by the implementation and reported through the
    return value (``[]``, ``False``, the default or ``None``), never raised.
    """

    is_remote: bool = False

    @abstractmethod
    async def fetch_all(self, collection: Collection) -> list[dict[str, Any]]:
        """Return every document in ``collection``."""

    @abstractmethod
    async def save_one(self, collection: Collection, item: dict[str, Any]) -> bool:
        """Insert or replace ``item`` by its ``id``."""

    @abstractmethod
    async def save_all(
        self, collection: Collection, items: list[dict[str, Any]]
    ) -> bool:
        """Bulk save ``items`` into ``collection``."""

    @abstractmethod
    async def delete_many(self, collection: Collection, ids: list[str]) -> bool:
        """Remove the documents whose ``id`` is in ``ids``."""

    @abstractmethod
    async def fetch_settings(self, default: dict[str, Any]) -> dict[str, Any]:
        """Return the settings singleton or ``default`` when absent."""

    @abstractmethod
    async def save_settings(self, settings: dict[str, Any]) -> bool:
        """Replace the settings singleton."""

    @abstractmethod
    async def store_attachment(
        self, name: str, content: bytes, content_type: str | None = None
    ) -> Attachment | None:
        """Turn raw file ``content`` into an :class:`Attachment`."""

    async def close(self) -> None:
        """Release any held resources."""
