"""
Authentication Module
=====================

JWT-based authentication and authorization for the helpdesk service.

Features:
- JWT token generation and validation
- Password hashing with bcrypt
- Role-based access control (Customer / Agent / Admin)
- FastAPI dependencies for route protection

Usage:
    from shared.auth import (
        create_access_token,
        get_current_user,
        require_roles,
        hash_password,
        verify_password,
    )

    # Hash password for storage
    hashed = hash_password("user_password")

    # Verify password
    if verify_password("user_password", hashed):
        token = create_access_token({"sub": str(user_id), "roles": ["Customer"]})

    # Protect routes
    @app.get("/protected")
    async def protected(user: User = Depends(get_current_user)):
        return {"user": user.email}

    @app.get("/reports")
    async def reports(user: User = Depends(require_staff)):
        return {"staff": True}
"""

from shared.auth.jwt import (
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    TokenData,
    TokenPair,
)
from shared.auth.password import hash_password, verify_password
from shared.auth.dependencies import (
    ROLE_ADMIN,
    ROLE_AGENT,
    ROLE_CUSTOMER,
    STAFF_ROLES,
    User,
    get_current_user,
    get_current_active_user,
    require_roles,
    require_admin,
    require_staff,
    oauth2_scheme,
)

__all__ = [
    # JWT
    "create_access_token",
    "create_refresh_token",
    "create_token_pair",
    "decode_token",
    "TokenData",
    "TokenPair",
    # Password
    "hash_password",
    "verify_password",
    # Dependencies
    "User",
    "ROLE_ADMIN",
    "ROLE_AGENT",
    "ROLE_CUSTOMER",
    "STAFF_ROLES",
    "get_current_user",
    "get_current_active_user",
    "require_roles",
    "require_admin",
    "require_staff",
    "oauth2_scheme",
]
