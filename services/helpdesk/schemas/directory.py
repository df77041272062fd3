"""
Directory Schemas
=================

Departments, user profiles and authentication payloads.

Version: 0.1.0
"""

from datetime import datetime

from pydantic import Field, field_validator

from services.helpdesk.domain.enums import UserRole
from services.helpdesk.schemas.base import ApiModel, not_blank


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class DepartmentOut(ApiModel):
    id: int
    name: str
    description: str | None = None
    color: str | None = None
    active_tickets: int = 0


class DepartmentSuggestRequest(ApiModel):
    title: str = ""
    description: str = ""


class DepartmentSuggestion(ApiModel):
    department: DepartmentOut | None = None


class RegisterRequest(ApiModel):
    """Self-service customer registration."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=100)
    department: str | None = Field(default=None, max_length=50)

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v: str) -> str | None:
        return not_blank(v)


class LoginRequest(ApiModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class UserOut(ApiModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    user_type: UserRole
    is_active: bool
    last_login_at: datetime | None = None
    department: str | None = None
    specialization: str | None = None
    level: int | None = None
    is_available: bool | None = None


class AuthResponse(ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class RefreshRequest(ApiModel):
    refresh_token: str = Field(..., min_length=1)


class UserCreate(ApiModel):
    """Account created by an administrator; role fields apply to the chosen type."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=100)
    user_type: UserRole = UserRole.CUSTOMER
    is_active: bool = True
    department: str | None = Field(default=None, max_length=50)
    specialization: str | None = Field(default=None, max_length=100)
    level: int | None = Field(default=None, ge=1, le=5)
    is_available: bool | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v: str) -> str | None:
        return not_blank(v)


class UserUpdate(ApiModel):
    """Partial account update. Role fields only apply to the matching account type."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str | None = Field(default=None, min_length=6, max_length=100)
    is_active: bool | None = None
    department: str | None = Field(default=None, max_length=50)
    specialization: str | None = Field(default=None, max_length=100)
    level: int | None = Field(default=None, ge=1, le=5)
    is_available: bool | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_blank(cls, v: str | None) -> str | None:
        return not_blank(v)


class UserStatusChange(ApiModel):
    is_active: bool
