"""
FastAPI Authentication Dependencies
===================================

Dependency injection for route protection.

Version: 0.1.0
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field

from shared.auth.jwt import decode_token
from shared.logging import get_logger


logger = get_logger(__name__)

# OAuth2 scheme for token extraction from Authorization header
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/token",
    auto_error=False,
)

ROLE_CUSTOMER = "Customer"
ROLE_AGENT = "Agent"
ROLE_ADMIN = "Admin"
STAFF_ROLES = [ROLE_AGENT, ROLE_ADMIN]


class User(BaseModel):
    """Authenticated user model for dependency injection."""

    id: int = Field(..., description="User ID")
    email: str | None = Field(default=None, description="User email")
    name: str | None = Field(default=None, description="Display name")
    roles: list[str] = Field(default_factory=list, description="User roles")
    is_active: bool = Field(default=True, description="Whether user is active")

    @property
    def is_staff(self) -> bool:
        """Agents and admins are staff."""
        return bool(set(self.roles).intersection(STAFF_ROLES))

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> User:
    """
    Extract and validate user from JWT token.

    Args:
        token: JWT token from Authorization header

    Returns:
        User: Authenticated user

    Raises:
        HTTPException: 401 if token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token is None:
        logger.warning("auth_token_missing")
        raise credentials_exception

    token_data = decode_token(token, verify_type="access")

    if token_data is None:
        logger.warning("auth_token_invalid")
        raise credentials_exception

    try:
        user_id = int(token_data.sub)
    except ValueError:
        logger.warning("auth_token_subject_invalid", sub=token_data.sub)
        raise credentials_exception from None

    logger.debug("user_authenticated", user_id=user_id)

    return User(
        id=user_id,
        email=token_data.email,
        name=token_data.name,
        roles=token_data.roles,
    )


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Ensure the current user is active.

    Raises:
        HTTPException: 403 if user is inactive
    """
    if not current_user.is_active:
        logger.warning("inactive_user_access_attempt", user_id=current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user


def require_roles(
    required_roles: list[str],
    require_all: bool = False,
) -> Callable[[User], User]:
    """
    Create a dependency that requires specific roles.

    Args:
        required_roles: List of role names required
        require_all: If True, user must have ALL roles. If False, ANY role suffices.

    Returns:
        Dependency function

    Usage:
        @app.get("/reports")
        async def reports(user: User = Depends(require_roles(["Admin", "Agent"]))):
            ...
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_active_user)],
    ) -> User:
        user_roles = set(current_user.roles)
        required = set(required_roles)

        if require_all:
            has_roles = required.issubset(user_roles)
        else:
            has_roles = bool(required.intersection(user_roles))

        if not has_roles:
            logger.warning(
                "insufficient_roles",
                user_id=current_user.id,
                user_roles=list(user_roles),
                required_roles=required_roles,
                require_all=require_all,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return current_user

    return role_checker


# Common role dependencies
require_admin = require_roles([ROLE_ADMIN])
require_staff = require_roles(STAFF_ROLES)
