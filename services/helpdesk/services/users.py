"""
User Service
============

Administration of accounts: listing, creation of customers, agents and
administrators, profile edits, activation and soft deletion.

Email addresses are unique across all accounts, deleted ones included. A
clash found by the repository (including one lost to a concurrent request)
is reported as a validation error on ``email``. The last active
administrator can be neither deactivated nor deleted.

Version: 0.1.0
"""

from collections.abc import Callable
from datetime import datetime

from services.helpdesk.domain import (
    AdminProfile,
    AgentProfile,
    CustomerProfile,
    UserAccount,
    UserRole,
    utc_now,
)
from services.helpdesk.errors import DuplicateEmailError, NotFoundError, ValidationFailedError
from services.helpdesk.repositories import UserQuery, UserRepository
from services.helpdesk.schemas import UserCreate, UserUpdate
from shared.auth import User, hash_password
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)

EMAIL_TAKEN = "Email is already registered"
LAST_ADMIN = "Cannot remove the last active administrator"


def _new_profile(data: UserCreate) -> CustomerProfile | AgentProfile | AdminProfile:
    if data.user_type == UserRole.AGENT:
        return AgentProfile(
            specialization=data.specialization,
            level=data.level if data.level is not None else 1,
            is_available=data.is_available if data.is_available is not None else True,
        )
    if data.user_type == UserRole.ADMIN:
        return AdminProfile()
    return CustomerProfile(company_department=data.department)


class UserService:
    """Account administration on top of the user repository."""

    def __init__(self, users: UserRepository, clock: Callable[[], datetime] = utc_now) -> None:
        self._users = users
        self._clock = clock

    async def list_users(
        self,
        role: UserRole | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> tuple[list[UserAccount], int]:
        size = min(page_size or settings.helpdesk.default_page_size, settings.helpdesk.max_page_size)
        query = UserQuery(
            role=role,
            search=search,
            offset=(max(page, 1) - 1) * size,
            limit=size,
        )
        return await self._users.list(query)

    async def list_customers(
        self, search: str | None = None, page: int = 1, page_size: int | None = None
    ) -> tuple[list[UserAccount], int]:
        return await self.list_users(UserRole.CUSTOMER, search, page, page_size)

    async def get_user(self, user_id: int) -> UserAccount:
        account = await self._users.get(user_id)
        if account is None:
            raise NotFoundError("User", user_id)
        return account

    async def create_user(self, actor: User, data: UserCreate) -> UserAccount:
        email = data.email.strip().lower()
        if await self._users.get_by_email(email) is not None:
            raise ValidationFailedError.for_field("email", EMAIL_TAKEN)

        try:
            account = await self._users.add(
                UserAccount(
                    first_name=data.first_name.strip(),
                    last_name=data.last_name.strip(),
                    email=email,
                    password_hash=hash_password(data.password),
                    profile=_new_profile(data),
                    is_active=data.is_active,
                    created_at=self._clock(),
                )
            )
        except DuplicateEmailError as e:
            raise ValidationFailedError.for_field("email", EMAIL_TAKEN) from e

        logger.info("user_created", user_id=account.id, role=account.role.value, created_by=actor.id)
        return account

    async def update_user(self, actor: User, user_id: int, data: UserUpdate) -> UserAccount:
        account = await self.get_user(user_id)

        if data.email is not None:
            email = data.email.strip().lower()
            if email != account.email:
                existing = await self._users.get_by_email(email)
                if existing is not None and existing.id != user_id:
                    raise ValidationFailedError.for_field("email", EMAIL_TAKEN)
            account.email = email
        if data.first_name is not None:
            account.first_name = data.first_name.strip()
        if data.last_name is not None:
            account.last_name = data.last_name.strip()
        if data.password:
            account.password_hash = hash_password(data.password)
        if data.is_active is not None:
            await self._ensure_admin_remains(account, data.is_active)
            account.is_active = data.is_active

        profile = account.profile
        if isinstance(profile, CustomerProfile):
            if data.department is not None:
                profile.company_department = data.department
        elif isinstance(profile, AgentProfile):
            if data.specialization is not None:
                profile.specialization = data.specialization
            if data.level is not None:
                profile.level = data.level
            if data.is_available is not None:
                profile.is_available = data.is_available

        try:
            saved = await self._users.update(account)
        except DuplicateEmailError as e:
            raise ValidationFailedError.for_field("email", EMAIL_TAKEN) from e

        logger.info("user_updated", user_id=user_id, updated_by=actor.id)
        return saved

    async def set_status(self, actor: User, user_id: int, is_active: bool) -> UserAccount:
        account = await self.get_user(user_id)
        await self._ensure_admin_remains(account, is_active)
        account.is_active = is_active
        saved = await self._users.update(account)
        logger.info("user_status_changed", user_id=user_id, is_active=is_active, changed_by=actor.id)
        return saved

    async def delete_user(self, actor: User, user_id: int) -> None:
        account = await self.get_user(user_id)
        await self._ensure_admin_remains(account, still_active=False)
        account.is_deleted = True
        await self._users.update(account)
        logger.info("user_deleted", user_id=user_id, deleted_by=actor.id)

    async def _ensure_admin_remains(self, account: UserAccount, still_active: bool) -> None:
        if still_active or account.role != UserRole.ADMIN or not account.is_active:
            return
        if await self._users.count_active_admins() <= 1:
            raise ValidationFailedError(LAST_ADMIN)
