"""
Authentication API Endpoints.

Registration, login, token refresh and the caller's profile.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from services.helpdesk.dependencies import get_account_service
from services.helpdesk.schemas import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest, UserOut
from services.helpdesk.services import AccountService
from shared.auth import User, get_current_active_user
from shared.models import BaseResponse


router = APIRouter(prefix="/auth", tags=["auth"])

Accounts = Annotated[AccountService, Depends(get_account_service)]


@router.post(
    "/register",
    response_model=BaseResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer account",
)
async def register(data: RegisterRequest, service: Accounts) -> BaseResponse[AuthResponse]:
    return BaseResponse(data=await service.register(data), message="Account created")


@router.post(
    "/token",
    response_model=BaseResponse[AuthResponse],
    summary="Log in with email and password",
)
async def login(data: LoginRequest, service: Accounts) -> BaseResponse[AuthResponse]:
    """Exchange credentials for an access/refresh token pair."""
    return BaseResponse(data=await service.login(data.email, data.password))


@router.post(
    "/refresh",
    response_model=BaseResponse[AuthResponse],
    summary="Exchange a refresh token for a new token pair",
)
async def refresh(data: RefreshRequest, service: Accounts) -> BaseResponse[AuthResponse]:
    return BaseResponse(data=await service.refresh(data.refresh_token))


@router.get("/me", response_model=BaseResponse[UserOut], summary="Current user profile")
async def me(
    user: Annotated[User, Depends(get_current_active_user)],
    service: Accounts,
) -> BaseResponse[UserOut]:
    return BaseResponse(data=await service.me(user))
