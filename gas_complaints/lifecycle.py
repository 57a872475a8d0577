"""Complaint lifecycle: filing, referral, responses, defect returns, verdicts.

Status flow::

    New -> Referred -> Responded -> Closed
      \\______ Investigation ______/

``Investigation`` can be entered from any open status when the admin
returns a complaint for missing documents. A reply from the targeted party
is recorded but leaves the complaint in ``Investigation`` until the admin
refers it again or closes it.

Every mutation replaces the complaint in :class:`AppState` first and then
persists it. A failed write restores the previous value, unless a later
operation already replaced it, and raises :class:`PersistenceFailed`. SMS
notifications are scheduled in the background and never affect the outcome
of an operation.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pydantic import ValidationError

from .core.errors import NotAllowed, NotFound, PersistenceFailed, ValidationFailed
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
    User,
    utcnow,
)
from .core.validation import validate_phone_number
from .directory import SAVE_FAILED, Directory
from .sms import Notifier, SmsGateway, SmsResult
from .storage import Backend

log = logging.getLogger(__name__)

ADMIN_ONLY = "این عملیات فقط توسط مدیر سیستم قابل انجام است."
ALREADY_CLOSED = "این پرونده مختومه شده و امکان تغییر ندارد."

_IN_FLOW = (ComplaintStatus.REFERRED, ComplaintStatus.RESPONDED)


@dataclass
class AppState:
    """Everything the application holds in memory."""

    directory: Directory
    complaints: dict[str, Complaint] = field(default_factory=dict)
    sms_settings: SmsSettings = field(default_factory=SmsSettings)


@dataclass(frozen=True)
class DashboardStats:
    total: int
    new: int
    in_progress: int
    closed: int


def _is_party(complaint: Complaint, user: User) -> bool:
    """Whether ``user`` is the complainant or assigned engineer in their role."""
    if user.role is Role.COMPLAINANT:
        return complaint.complainant.id == user.id
    engineer = complaint.engineer_for(user.role)
    return engineer is not None and engineer.id == user.id


def can_respond(complaint: Complaint, user: User) -> bool:
    """Whether ``user`` may add a comment to ``complaint`` right now."""
    if complaint.is_closed or not _is_party(complaint, user):
        return False
    if complaint.status is ComplaintStatus.INVESTIGATION:
        return complaint.investigation_target is user.role
    if complaint.status in _IN_FLOW:
        if user.role is Role.SUPERVISOR:
            return complaint.referred_to_supervisor
        if user.role is Role.EXECUTOR:
            return complaint.referred_to_executor
    return False


def visible_comments(complaint: Complaint, viewer: User) -> list[Comment]:
    """Admins see everything; others see admin comments and their own."""
    if viewer.role is Role.ADMIN:
        return list(complaint.comments)
    return [
        c for c in complaint.comments
        if c.author.role is Role.ADMIN or c.author.id == viewer.id
    ]


def _require_admin(actor: User) -> None:
    if actor.role is not Role.ADMIN:
        raise NotAllowed(ADMIN_ONLY)


def _require_open(complaint: Complaint) -> None:
    if complaint.is_closed:
        raise NotAllowed(ALREADY_CLOSED)


class ComplaintService:
    """Operations the UI layer calls, scoped by the acting user."""

    def __init__(self, state: AppState, backend: Backend, notifier: Notifier) -> None:
        self.state = state
        self.backend = backend
        self.notifier = notifier

    @classmethod
    def build(cls, backend: Backend, gateway: SmsGateway) -> ComplaintService:
        """Wire an empty state, the directory and a notifier onto ``backend``."""
        state = AppState(directory=Directory(backend))
        notifier = Notifier(gateway, lambda: state.sms_settings)
        return cls(state, backend, notifier)

    @property
    def directory(self) -> Directory:
        return self.state.directory

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load(self) -> None:
        """Load users, complaints and SMS settings from the backend."""
        await self.directory.load()

        complaints: dict[str, Complaint] = {}
        for doc in await self.backend.fetch_all("complaints"):
            try:
                complaint = Complaint.model_validate(doc)
            except ValidationError:
                log.exception("Skipping malformed complaint %r", doc.get("id"))
                continue
            complaints[complaint.id] = complaint
        self.state.complaints = complaints

        default = SmsSettings()
        doc = await self.backend.fetch_settings(default.to_document())
        try:
            self.state.sms_settings = SmsSettings.model_validate(doc)
        except ValidationError:
            log.exception("Stored SMS settings are malformed, using defaults")
            self.state.sms_settings = default
        log.info(
            "Loaded %d users and %d complaints",
            len(self.directory.users),
            len(complaints),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def get(self, complaint_id: str) -> Complaint | None:
        return self.state.complaints.get(complaint_id)

    def require(self, complaint_id: str) -> Complaint:
        complaint = self.get(complaint_id)
        if complaint is None:
            raise NotFound(f"پرونده‌ای با کد {complaint_id} یافت نشد.")
        return complaint

    def _tracking_code(self) -> str:
        millis = int(utcnow().timestamp() * 1000)
        while True:
            code = f"C-{str(millis)[-6:]}"
            if code not in self.state.complaints:
                return code
            millis += 1

    async def _commit(self, complaint: Complaint) -> Complaint:
        previous = self.state.complaints.get(complaint.id)
        self.state.complaints[complaint.id] = complaint
        if not await self.backend.save_one("complaints", complaint.to_document()):
            # leave a newer change made while the write was pending alone
            if self.state.complaints.get(complaint.id) is complaint:
                if previous is None:
                    del self.state.complaints[complaint.id]
                else:
                    self.state.complaints[complaint.id] = previous
            raise PersistenceFailed(SAVE_FAILED)
        return complaint

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    async def create_complaint(
        self,
        actor: User,
        *,
        project_address: str,
        contact_phone_number: str,
        supervisor_id: str,
        executor_id: str,
        complaint_type: ComplaintType = ComplaintType.OTHER,
        description: str = "",
        gas_file_number: str = "",
        attachments: Sequence[Attachment] = (),
    ) -> Complaint:
        """File a new complaint owned by ``actor``."""
        if not validate_phone_number(contact_phone_number):
            raise ValidationFailed(
                "شماره موبایل وارد شده معتبر نیست (مثال: 09121234567)."
            )
        if not project_address.strip():
            raise ValidationFailed("وارد کردن آدرس دقیق ملک الزامی است.")
        supervisor = self.directory.get(supervisor_id)
        executor = self.directory.get(executor_id)
        if (
            supervisor is None
            or executor is None
            or supervisor.role is not Role.SUPERVISOR
            or executor.role is not Role.EXECUTOR
        ):
            raise ValidationFailed("لطفا ناظر و مجری را انتخاب کنید.")

        complaint = Complaint(
            id=self._tracking_code(),
            gas_file_number=gas_file_number,
            complainant=actor.snapshot(),
            project_address=project_address.strip(),
            contact_phone_number=contact_phone_number,
            supervisor=supervisor.snapshot(),
            executor=executor.snapshot(),
            complaint_type=ComplaintType(complaint_type),
            description=description,
            attachments=list(attachments),
        )
        await self._commit(complaint)
        log.info("Complaint %s filed by %s", complaint.id, actor.id)

        self.notifier.notify(
            complaint.contact_phone_number, "new_complaint", id=complaint.id
        )
        return complaint

    async def refer(
        self, actor: User, complaint_id: str, target: ReferralTarget | str
    ) -> Complaint:
        """Route the complaint to its supervisor or executor.

        Referring to a target that is already referred changes nothing.
        """
        target = ReferralTarget(target)
        _require_admin(actor)
        complaint = self.require(complaint_id)
        _require_open(complaint)
        if complaint.is_referred_to(target):
            log.info("Complaint %s already referred to %s", complaint_id, target.value)
            return complaint

        now = utcnow()
        entry = ReferralLog(target=target, referred_at=now, referred_by=actor.snapshot())
        changes = {
            "status": ComplaintStatus.REFERRED,
            "referred_at": complaint.referred_at or now,
            "referral_history": [*complaint.referral_history, entry],
            "investigation_target": None,
        }
        if target is ReferralTarget.SUPERVISOR:
            changes["referred_to_supervisor"] = True
        else:
            changes["referred_to_executor"] = True
        updated = await self._commit(complaint.model_copy(update=changes))
        log.info("Complaint %s referred to %s", complaint_id, target.value)

        engineer = updated.engineer_for(target.role)
        if engineer is not None:
            self.notifier.notify(
                engineer.phone_number, "referral_to_engineer", id=updated.id
            )
        self.notifier.notify(
            updated.contact_phone_number,
            "referral_notification",
            id=updated.id,
            target=target.label,
        )
        return updated

    async def add_comment(
        self,
        actor: User,
        complaint_id: str,
        text: str,
        attachments: Sequence[Attachment] = (),
    ) -> Complaint:
        """Record a reply from a referred engineer or an investigation target."""
        complaint = self.require(complaint_id)
        _require_open(complaint)
        if not can_respond(complaint, actor):
            raise NotAllowed("شما مجاز به ثبت پاسخ برای این پرونده نیستید.")
        if not text.strip() and not attachments:
            raise ValidationFailed("متن پاسخ یا فایل ضمیمه الزامی است.")

        comment = Comment(author=actor.snapshot(), text=text, attachments=list(attachments))
        changes: dict[str, object] = {"comments": [*complaint.comments, comment]}
        if complaint.status is not ComplaintStatus.INVESTIGATION:
            changes["status"] = ComplaintStatus.RESPONDED
            changes["responded_at"] = comment.created_at
        updated = await self._commit(complaint.model_copy(update=changes))
        log.info("Comment %s added to %s by %s", comment.id, complaint_id, actor.id)
        return updated

    async def return_complaint(
        self, actor: User, complaint_id: str, reason: str, target_role: Role | str
    ) -> Complaint:
        """Put the complaint on hold until ``target_role`` supplies documents."""
        target_role = Role(target_role)
        _require_admin(actor)
        complaint = self.require(complaint_id)
        _require_open(complaint)
        if not reason.strip():
            raise ValidationFailed("شرح نقص مدارک الزامی است.")
        if target_role is Role.ADMIN or (
            target_role.is_engineer and complaint.engineer_for(target_role) is None
        ):
            raise ValidationFailed("مخاطب انتخاب شده برای این پرونده معتبر نیست.")

        comment = Comment(
            author=actor.snapshot(),
            text=(
                f"*** اعلام نقص مدارک / درخواست اطلاعات (مخاطب: {target_role.label}) ***\n"
                f"{reason}"
            ),
        )
        updated = await self._commit(
            complaint.model_copy(
                update={
                    "status": ComplaintStatus.INVESTIGATION,
                    "investigation_target": target_role,
                    "comments": [*complaint.comments, comment],
                }
            )
        )
        log.info("Complaint %s returned to %s", complaint_id, target_role.value)

        self.notifier.notify(
            updated.phone_for(target_role), "defect_return", id=updated.id
        )
        return updated

    async def add_final_verdict(
        self, actor: User, complaint_id: str, verdict: str
    ) -> Complaint:
        """Close the complaint with the board's final decision."""
        _require_admin(actor)
        complaint = self.require(complaint_id)
        _require_open(complaint)
        if not verdict.strip():
            raise ValidationFailed("متن رای نهایی الزامی است.")

        updated = await self._commit(
            complaint.model_copy(
                update={
                    "status": ComplaintStatus.CLOSED,
                    "final_verdict": verdict,
                    "closed_at": utcnow(),
                    "investigation_target": None,
                }
            )
        )
        log.info("Final verdict recorded for %s", complaint_id)

        self.notifier.notify(
            updated.contact_phone_number, "final_verdict", id=updated.id
        )
        return updated

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------
    async def upload_attachment(
        self, name: str, content: bytes, content_type: str | None = None
    ) -> Attachment:
        attachment = await self.backend.store_attachment(name, content, content_type)
        if attachment is None:
            raise PersistenceFailed("خطا در بارگذاری فایل‌ها.")
        return attachment

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def visible_comments(self, complaint: Complaint, viewer: User) -> list[Comment]:
        return visible_comments(complaint, viewer)

    def can_respond(self, complaint: Complaint, user: User) -> bool:
        return can_respond(complaint, user)

    def complaints_for(self, user: User) -> list[Complaint]:
        """Complaints shown on ``user``'s dashboard."""
        complaints = self.state.complaints.values()
        if user.role is Role.ADMIN:
            return list(complaints)
        if user.role is Role.COMPLAINANT:
            return [c for c in complaints if c.complainant.id == user.id]
        target = ReferralTarget(user.role.value)
        return [
            c for c in complaints
            if _is_party(c, user) and c.is_referred_to(target)
        ]

    def stats_for(self, user: User) -> DashboardStats:
        scoped = self.complaints_for(user)
        return DashboardStats(
            total=len(scoped),
            # new complaints are counted across the board, not per user
            new=sum(
                1 for c in self.state.complaints.values()
                if c.status is ComplaintStatus.NEW
            ),
            in_progress=sum(1 for c in scoped if c.status in _IN_FLOW),
            closed=sum(1 for c in scoped if c.is_closed),
        )

    # ------------------------------------------------------------------
    # SMS settings
    # ------------------------------------------------------------------
    async def update_sms_settings(self, actor: User, settings: SmsSettings) -> SmsSettings:
        _require_admin(actor)
        previous = self.state.sms_settings
        self.state.sms_settings = settings
        if not await self.backend.save_settings(settings.to_document()):
            if self.state.sms_settings is settings:
                self.state.sms_settings = previous
            raise PersistenceFailed(SAVE_FAILED)
        log.info("SMS settings updated by %s", actor.id)
        return settings

    async def send_test_sms(
        self, actor: User, receptor: str, settings: SmsSettings | None = None
    ) -> SmsResult:
        """Send the test message with ``settings`` (defaults to the saved ones)."""
        _require_admin(actor)
        if not validate_phone_number(receptor):
            raise ValidationFailed("شماره موبایل وارد شده معتبر نیست.")
        return await self.notifier.send_test(receptor, settings)
