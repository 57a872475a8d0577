"""Complaint tracking for a gas-installation engineering oversight board.

Complainants file complaints against supervisors or executors, the admin
routes them to the responsible engineer, returns them for missing documents
or closes them with a final verdict. The main entry points are re-exported
here so consumers can simply import them from ``gas_complaints``.
"""

from .core.errors import (
    ComplaintError,
    NotAllowed,
    NotFound,
    PersistenceFailed,
    ValidationFailed,
)
from .core.models import (
    Attachment,
    Comment,
    Complaint,
    ComplaintStatus,
    ComplaintType,
    ReferralLog,
    ReferralTarget,
    Role,
    SmsSettings,
    SmsTemplates,
    User,
)
from .core.validation import validate_national_id, validate_phone_number
from .directory import Directory
from .lifecycle import AppState, ComplaintService
from .storage import LocalBackend, RemoteBackend, create_backend

__all__ = [
    "AppState",
    "Attachment",
    "Comment",
    "Complaint",
    "ComplaintError",
    "ComplaintService",
    "ComplaintStatus",
    "ComplaintType",
    "Directory",
    "LocalBackend",
    "NotAllowed",
    "NotFound",
    "PersistenceFailed",
    "ReferralLog",
    "ReferralTarget",
    "RemoteBackend",
    "Role",
    "SmsSettings",
    "SmsTemplates",
    "User",
    "ValidationFailed",
    "create_backend",
    "validate_national_id",
    "validate_phone_number",
]
