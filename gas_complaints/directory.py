"""Roster of accounts partitioned by role."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .core.errors import NotAllowed, NotFound, PersistenceFailed, ValidationFailed
from .core.models import Role, User
from .core.validation import validate_national_id, validate_phone_number
from .storage import Backend

log = logging.getLogger(__name__)

DEFAULT_PASSWORD = "123"
SAVE_FAILED = "ذخیره اطلاعات در پایگاه داده ناموفق بود. لطفا دوباره تلاش کنید."

INITIAL_USERS: tuple[User, ...] = (
    User(id="admin", full_name="مدیر سیستم", password="admin", role=Role.ADMIN),
    User(
        id="1234567890",
        full_name="علی محمدی (شاکی)",
        password="123",
        role=Role.COMPLAINANT,
    ),
    User(id="eng1", full_name="مهندس رضایی (ناظر)", password="123", role=Role.SUPERVISOR),
    User(id="exec1", full_name="شرکت گاز سوزان (مجری)", password="123", role=Role.EXECUTOR),
)

_KEEP: Any = object()


class Directory:
    """In-memory roster persisted through a :class:`Backend`.

    Every mutation updates the roster first and then writes it. If the write
    fails the previous roster is restored and :class:`PersistenceFailed` is
    raised.
    """

    def __init__(self, backend: Backend, users: list[User] | None = None) -> None:
        self.backend = backend
        self.users: list[User] = list(users or [])

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load(self) -> list[User]:
        """Fetch the roster, seeding the initial accounts into an empty store."""
        users: list[User] = []
        for doc in await self.backend.fetch_all("users"):
            try:
                users.append(User.model_validate(doc))
            except ValidationError:
                log.exception("Skipping malformed user document %r", doc.get("id"))

        if not users:
            users = [u.model_copy() for u in INITIAL_USERS]
            if not await self.backend.save_all("users", [u.to_document() for u in users]):
                log.error("Could not seed the initial roster")
        self.users = users
        return users

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @property
    def supervisors(self) -> list[User]:
        return [u for u in self.users if u.role is Role.SUPERVISOR]

    @property
    def executors(self) -> list[User]:
        return [u for u in self.users if u.role is Role.EXECUTOR]

    def get(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def require(self, user_id: str) -> User:
        user = self.get(user_id)
        if user is None:
            raise NotFound(f"کاربری با شناسه {user_id} یافت نشد.")
        return user

    def authenticate(self, user_id: str, password: str) -> User:
        """Return the account matching the credentials."""
        user = self.get(user_id)
        if user is None or user.password != password:
            raise NotAllowed("کد ملی یا رمز عبور اشتباه است.")
        log.info("User %s logged in", user.id)
        return user

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def _commit(self, user: User, previous: list[User]) -> User:
        if not await self.backend.save_one("users", user.to_document()):
            self._rollback(user, previous)
            raise PersistenceFailed(SAVE_FAILED)
        return user

    def _rollback(self, user: User, previous: list[User]) -> None:
        # Only undo this account, and only if nobody replaced it meanwhile.
        if self.get(user.id) is not user:
            return
        before = next((u for u in previous if u.id == user.id), None)
        if before is None:
            self.users = [u for u in self.users if u is not user]
        else:
            self.users = [before if u is user else u for u in self.users]

    def _replace(self, user: User) -> list[User]:
        previous = list(self.users)
        self.users = [user if u.id == user.id else u for u in self.users]
        return previous

    async def register(self, full_name: str, user_id: str, password: str) -> User:
        """Create a complainant account."""
        if not validate_national_id(user_id):
            raise ValidationFailed("کد ملی وارد شده معتبر نیست.")
        if self.get(user_id) is not None:
            raise ValidationFailed("کاربری با این کد ملی قبلاً ثبت نام کرده است.")
        if not full_name.strip():
            raise ValidationFailed("وارد کردن نام و نام خانوادگی الزامی است.")

        user = User(
            id=user_id, full_name=full_name.strip(), password=password, role=Role.COMPLAINANT
        )
        previous = list(self.users)
        self.users.append(user)
        await self._commit(user, previous)
        log.info("Registered complainant %s", user_id)
        return user

    async def add_engineer(self, engineer: User) -> User:
        if not validate_national_id(engineer.id):
            raise ValidationFailed("کد ملی وارد شده نامعتبر است.")
        if self.get(engineer.id) is not None:
            raise ValidationFailed("کاربری با این کد ملی قبلاً وجود دارد.")
        if engineer.phone_number and not validate_phone_number(engineer.phone_number):
            raise ValidationFailed("فرمت شماره تلفن همراه نامعتبر است.")
        if not engineer.role.is_engineer:
            raise ValidationFailed("نقش مهندس باید ناظر یا مجری باشد.")

        if engineer.password is None:
            engineer = engineer.model_copy(update={"password": DEFAULT_PASSWORD})
        previous = list(self.users)
        self.users.append(engineer)
        await self._commit(engineer, previous)
        log.info("Added %s %s", engineer.role.value, engineer.id)
        return engineer

    async def update_engineer(
        self,
        user_id: str,
        *,
        full_name: str | None = None,
        email: str | None = None,
        phone_number: str | None = None,
        role: Role | None = None,
    ) -> User:
        """Merge the given fields into an engineer's account."""
        if phone_number and not validate_phone_number(phone_number):
            raise ValidationFailed(
                "فرمت شماره تلفن همراه نامعتبر است. (مثال صحیح: 09123456789)"
            )
        if role is not None and not role.is_engineer:
            raise ValidationFailed("نقش مهندس باید ناظر یا مجری باشد.")
        current = self.require(user_id)
        if not current.role.is_engineer:
            raise NotAllowed("فقط اطلاعات ناظر و مجری از این بخش قابل ویرایش است.")

        changes: dict[str, Any] = {}
        if full_name is not None:
            changes["full_name"] = full_name
        if email is not None:
            changes["email"] = email or None
        if phone_number is not None:
            changes["phone_number"] = phone_number or None
        if role is not None:
            changes["role"] = role

        updated = current.model_copy(update=changes)
        previous = self._replace(updated)
        return await self._commit(updated, previous)

    async def update_profile(
        self,
        user_id: str,
        *,
        full_name: str | None = None,
        password: str | None = None,
        confirm_password: str | None = None,
        avatar: str | None = _KEEP,
    ) -> User:
        """Edit the caller's own profile.

        ``avatar=None`` removes the picture; leaving it out keeps it.
        """
        if password and password != confirm_password:
            raise ValidationFailed("رمزهای عبور جدید مطابقت ندارند.")
        current = self.require(user_id)

        changes: dict[str, Any] = {}
        if full_name:
            changes["full_name"] = full_name
        if password:
            changes["password"] = password
        if avatar is not _KEEP:
            changes["avatar"] = avatar or None

        updated = current.model_copy(update=changes)
        previous = self._replace(updated)
        return await self._commit(updated, previous)

    async def import_engineers(self, engineers: list[User]) -> list[User]:
        """Replace every supervisor and executor with ``engineers``.

        The whole batch is checked before anything changes. Errors carry the
        spreadsheet row number (header is row 1). Admin and complainant
        accounts are preserved. Engineers that already exist keep their
        credential and avatar; new ones get the default password.
        """
        kept = [u for u in self.users if not u.role.is_engineer]
        taken = {u.id for u in kept}
        for index, engineer in enumerate(engineers):
            row = index + 2
            if not validate_national_id(engineer.id):
                raise ValidationFailed(
                    f"کد ملی نامعتبر در ردیف {row} فایل اکسل: {engineer.id}", row=row
                )
            if not engineer.role.is_engineer:
                raise ValidationFailed(
                    f"مقدار نقش (role) در ردیف {row} نامعتبر است.", row=row
                )
            if engineer.id in taken:
                raise ValidationFailed(
                    f"کد ملی تکراری در ردیف {row} فایل اکسل: {engineer.id}", row=row
                )
            taken.add(engineer.id)

        imported: list[User] = []
        for engineer in engineers:
            existing = self.get(engineer.id)
            changes: dict[str, Any] = {}
            if engineer.password is None:
                changes["password"] = existing.password if existing else DEFAULT_PASSWORD
            if engineer.avatar is None and existing is not None:
                changes["avatar"] = existing.avatar
            imported.append(engineer.model_copy(update=changes))

        previous = list(self.users)
        new_ids = {u.id for u in imported}
        removed = [u.id for u in previous if u.role.is_engineer and u.id not in new_ids]
        self.users = kept + imported
        if not await self.backend.save_all("users", [u.to_document() for u in self.users]):
            self.users = previous
            raise PersistenceFailed(SAVE_FAILED)
        if not await self.backend.delete_many("users", removed):
            self.users = previous
            # put back what the upsert overwrote
            if not await self.backend.save_all("users", [u.to_document() for u in previous]):
                log.error("Could not restore the roster after a failed import")
            raise PersistenceFailed(SAVE_FAILED)
        log.info("Imported %d engineers, removed %d", len(imported), len(removed))
        return self.users
