"""Data models for the complaint tracker.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from the JSON
documents kept by the storage backends. Attribute names are snake_case in
Python while documents use the camelCase keys written by the original web
client, so rows created by either side stay readable.
"""

from __future__ import annotations

import datetime
import uuid
from datetime import UTC
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=UTC)


def new_id(prefix: str) -> str:
    """Return a time-derived identifier such as ``CM-1700000000000-1a2b3c``."""
    millis = int(utcnow().timestamp() * 1000)
    return f"{prefix}-{millis}-{uuid.uuid4().hex[:6]}"


class Role(str, Enum):
    COMPLAINANT = "complainant"
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    EXECUTOR = "executor"

    @property
    def label(self) -> str:
        """Persian label shown to users and used in SMS texts."""
        return _ROLE_LABELS[self]

    @property
    def is_engineer(self) -> bool:
        return self in (Role.SUPERVISOR, Role.EXECUTOR)


_ROLE_LABELS = {
    Role.COMPLAINANT: "شاکی",
    Role.ADMIN: "مدیر سیستم",
    Role.SUPERVISOR: "ناظر",
    Role.EXECUTOR: "مجری",
}


class ComplaintStatus(str, Enum):
    NEW = "جدید"
    REFERRED = "ارجاع شده"
    RESPONDED = "پاسخ داده شده"
    INVESTIGATION = "نقص مدارک / بررسی مجدد"
    CLOSED = "مختومه"


class ComplaintType(str, Enum):
    AGAINST_EXECUTOR = "شکایت از مجری"
    AGAINST_SUPERVISOR = "شکایت از ناظر"
    OTHER = "سایر"


class ReferralTarget(str, Enum):
    SUPERVISOR = "supervisor"
    EXECUTOR = "executor"

    @property
    def role(self) -> Role:
        return Role(self.value)

    @property
    def label(self) -> str:
        return self.role.label


class Document(BaseModel):
    """Base for everything stored as a JSON document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Serialise to the camelCase JSON shape kept by the backends."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class User(Document):
    """An account in the roster.

    Attributes
    ----------
    id:
        Login name. National ID for complainants and engineers.
    full_name:
        Display name.
    role:
        One of the four :class:`Role` values.
    password:
        Credential secret. Never embedded in complaints, see :meth:`snapshot`.

    """

    id: str
    full_name: str
    role: Role
    avatar: str | None = None
    phone_number: str | None = None
    email: str | None = None
    password: str | None = None

    def snapshot(self) -> User:
        """Return a copy without the credential for embedding in records."""
        return self.model_copy(update={"password": None})


class Attachment(Document):
    id: str
    name: str
    url: str


class Comment(Document):
    id: str = Field(default_factory=lambda: new_id("CM"))
    author: User
    text: str
    attachments: list[Attachment] = Field(default_factory=list)
    created_at: datetime.datetime = Field(default_factory=utcnow)


class ReferralLog(Document):
    id: str = Field(default_factory=lambda: new_id("REF"))
    target: ReferralTarget
    referred_at: datetime.datetime = Field(default_factory=utcnow)
    referred_by: User


class Complaint(Document):
    """A complaint and its full history.

    ``investigation_target`` is set only while the status is
    :attr:`ComplaintStatus.INVESTIGATION`; ``final_verdict`` and ``closed_at``
    are set only once the status is :attr:`ComplaintStatus.CLOSED`.
    """

    id: str
    gas_file_number: str = ""
    complainant: User
    project_address: str
    contact_phone_number: str
    supervisor: User | None = None
    executor: User | None = None
    complaint_type: ComplaintType = ComplaintType.OTHER
    description: str = ""
    status: ComplaintStatus = ComplaintStatus.NEW
    attachments: list[Attachment] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    referral_history: list[ReferralLog] = Field(default_factory=list)
    created_at: datetime.datetime = Field(default_factory=utcnow)
    referred_at: datetime.datetime | None = None
    responded_at: datetime.datetime | None = None
    closed_at: datetime.datetime | None = None
    final_verdict: str | None = None
    referred_to_supervisor: bool = False
    referred_to_executor: bool = False
    investigation_target: Role | None = None

    @property
    def is_closed(self) -> bool:
        return self.status is ComplaintStatus.CLOSED

    def is_referred_to(self, target: ReferralTarget) -> bool:
        if target is ReferralTarget.SUPERVISOR:
            return self.referred_to_supervisor
        return self.referred_to_executor

    @property
    def referral_targets(self) -> str:
        """Persian list of referred parties, e.g. ``"ناظر و مجری"``."""
        labels = [
            t.label for t in (ReferralTarget.SUPERVISOR, ReferralTarget.EXECUTOR)
            if self.is_referred_to(t)
        ]
        return " و ".join(labels)

    def engineer_for(self, role: Role) -> User | None:
        if role is Role.SUPERVISOR:
            return self.supervisor
        if role is Role.EXECUTOR:
            return self.executor
        return None

    def phone_for(self, role: Role) -> str | None:
        """Resolve the phone number of the party playing ``role``."""
        if role is Role.COMPLAINANT:
            return self.contact_phone_number
        engineer = self.engineer_for(role)
        return engineer.phone_number if engineer else None


def _drop_nulls(data: Any) -> Any:
    # a null field in a stored document means "use the default"
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None}
    return data


class SmsTemplates(Document):
    """Message templates. ``{id}`` and ``{target}`` are substituted."""

    new_complaint: str = "شکایت شما با کد پیگیری {id} در سامانه ثبت شد."
    referral_to_engineer: str = (
        "همکار گرامی، پرونده جدیدی با کد {id} به کارتابل شما ارجاع شد."
    )
    referral_notification: str = "شکایت {id} جهت بررسی به {target} ارجاع شد."
    defect_return: str = (
        "پرونده {id} دارای نقص مدارک است. لطفا جهت تکمیل اطلاعات به سامانه مراجعه کنید."
    )
    final_verdict: str = (
        "رای نهایی پرونده {id} صادر شد. جهت مشاهده به سامانه مراجعه کنید."
    )

    @model_validator(mode="before")
    @classmethod
    def defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)


class SmsSettings(Document):
    api_key: str = ""
    line_number: str = "2000660110"
    is_enabled: bool = True
    templates: SmsTemplates = Field(default_factory=SmsTemplates)

    @model_validator(mode="before")
    @classmethod
    def defaults_for_nulls(cls, data: Any) -> Any:
        return _drop_nulls(data)

    @field_validator("templates", mode="before")
    @classmethod
    def templates_object(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, SmsTemplates)) else {}
