"""
Account Service
===============

Customer self-registration, password login, token refresh and profile views.

Tokens carry the account id as ``sub`` and the account role as the single
entry of ``roles``; ``shared.auth`` dependencies rebuild the caller from them.

Version: 0.1.0
"""

from collections.abc import Callable
from datetime import datetime

from fastapi import HTTPException, status

from services.helpdesk.domain import (
    AgentProfile,
    CustomerProfile,
    UserAccount,
    utc_now,
)
from services.helpdesk.errors import DuplicateEmailError, NotFoundError, ValidationFailedError
from services.helpdesk.repositories import UserRepository
from services.helpdesk.schemas import AuthResponse, RegisterRequest, UserOut
from shared.auth import User, create_token_pair, decode_token, hash_password, verify_password
from shared.logging import get_logger


logger = get_logger(__name__)


def profile_view(account: UserAccount) -> UserOut:
    """Public view of an account, flattening the role profile."""
    fields = {
        "id": account.id,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "full_name": account.full_name,
        "email": account.email,
        "user_type": account.role,
        "is_active": account.is_active,
        "last_login_at": account.last_login_at,
    }
    profile = account.profile
    if isinstance(profile, CustomerProfile):
        fields["department"] = profile.company_department
    elif isinstance(profile, AgentProfile):
        fields["specialization"] = profile.specialization
        fields["level"] = profile.level
        fields["is_available"] = profile.is_available
    return UserOut(**fields)


class AccountService:
    """Registration and login against the user repository."""

    def __init__(self, users: UserRepository, clock: Callable[[], datetime] = utc_now) -> None:
        self._users = users
        self._clock = clock

    async def register(self, data: RegisterRequest) -> AuthResponse:
        email = data.email.strip().lower()
        if await self._users.get_by_email(email) is not None:
            raise ValidationFailedError.for_field("email", "Email is already registered")

        try:
            account = await self._users.add(
                UserAccount(
                    first_name=data.first_name.strip(),
                    last_name=data.last_name.strip(),
                    email=email,
                    password_hash=hash_password(data.password),
                    profile=CustomerProfile(company_department=data.department),
                    created_at=self._clock(),
                )
            )
        except DuplicateEmailError as e:
            # Lost a race with a concurrent registration of the same address
            raise ValidationFailedError.for_field("email", "Email is already registered") from e
        logger.info("user_registered", user_id=account.id, role=account.role.value)
        return self._issue(account)

    async def login(self, email: str, password: str) -> AuthResponse:
        account = await self._users.get_by_email(email)
        if account is None or not account.is_active or not verify_password(password, account.password_hash):
            logger.warning("login_failed", email=email.strip().lower())
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        account.last_login_at = self._clock()
        account = await self._users.update(account)
        logger.info("user_logged_in", user_id=account.id, role=account.role.value)
        return self._issue(account)

    async def refresh(self, refresh_token: str) -> AuthResponse:
        """Issue a new token pair from a valid refresh token.

        Roles are reloaded from the account, so a role change or deactivation
        takes effect on the next refresh.
        """
        token = decode_token(refresh_token, verify_type="refresh")
        account = None
        if token is not None and token.sub.isdigit():
            account = await self._users.get(int(token.sub))
        if account is None or not account.is_active:
            logger.warning("token_refresh_rejected", sub=token.sub if token else None)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired refresh token",
                headers={"WWW-Authenticate": "Bearer"},
            )

        logger.info("token_refreshed", user_id=account.id)
        return self._issue(account)

    async def me(self, actor: User) -> UserOut:
        account = await self._users.get(actor.id)
        if account is None:
            raise NotFoundError("User", actor.id)
        return profile_view(account)

    @staticmethod
    def _issue(account: UserAccount) -> AuthResponse:
        pair = create_token_pair(
            {
                "sub": str(account.id),
                "roles": [account.role.value],
                "email": account.email,
                "name": account.full_name,
            }
        )
        return AuthResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_in=pair.expires_in,
            user=profile_view(account),
        )
