"""
User API Endpoints.

Account administration for admins, and the customer directory staff use
to open tickets on a customer's behalf.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from services.helpdesk.dependencies import get_user_service
from services.helpdesk.domain import UserRole
from services.helpdesk.schemas import UserCreate, UserOut, UserStatusChange, UserUpdate
from services.helpdesk.services import UserService, profile_view
from shared.auth import User, require_admin, require_staff
from shared.config import settings
from shared.models import BaseResponse, PaginatedResponse


router = APIRouter(prefix="/users", tags=["users"])

StaffUser = Annotated[User, Depends(require_staff)]
AdminUser = Annotated[User, Depends(require_admin)]
Users = Annotated[UserService, Depends(get_user_service)]


def _page_size(page_size: int | None) -> int:
    return min(page_size or settings.helpdesk.default_page_size, settings.helpdesk.max_page_size)


@router.get(
    "",
    response_model=BaseResponse[PaginatedResponse[UserOut]],
    summary="List users",
)
async def list_users(
    user: AdminUser,
    service: Users,
    role: UserRole | None = Query(None),
    q: str | None = Query(None, max_length=200, description="Email or name"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
) -> BaseResponse[PaginatedResponse[UserOut]]:
    size = _page_size(page_size)
    accounts, total = await service.list_users(role=role, search=q, page=page, page_size=size)
    items = [profile_view(a) for a in accounts]
    return BaseResponse(data=PaginatedResponse.build(items, total, page, size))


@router.post(
    "",
    response_model=BaseResponse[UserOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(data: UserCreate, user: AdminUser, service: Users) -> BaseResponse[UserOut]:
    """
    Create a customer, agent or administrator account.

    ``specialization``, ``level`` and ``isAvailable`` apply to agents;
    ``department`` applies to customers.
    """
    account = await service.create_user(user, data)
    return BaseResponse(data=profile_view(account), message="User created")


@router.get(
    "/customers",
    response_model=BaseResponse[PaginatedResponse[UserOut]],
    summary="List customers",
)
async def list_customers(
    user: StaffUser,
    service: Users,
    q: str | None = Query(None, max_length=200, description="Email or name"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
) -> BaseResponse[PaginatedResponse[UserOut]]:
    size = _page_size(page_size)
    accounts, total = await service.list_customers(search=q, page=page, page_size=size)
    items = [profile_view(a) for a in accounts]
    return BaseResponse(data=PaginatedResponse.build(items, total, page, size))


@router.get("/{user_id}", response_model=BaseResponse[UserOut], summary="Get a user")
async def get_user(user_id: int, user: AdminUser, service: Users) -> BaseResponse[UserOut]:
    return BaseResponse(data=profile_view(await service.get_user(user_id)))


@router.put("/{user_id}", response_model=BaseResponse[UserOut], summary="Update a user")
async def update_user(
    user_id: int, data: UserUpdate, user: AdminUser, service: Users
) -> BaseResponse[UserOut]:
    account = await service.update_user(user, user_id, data)
    return BaseResponse(data=profile_view(account), message="User updated")


@router.patch(
    "/{user_id}/status",
    response_model=BaseResponse[UserOut],
    summary="Activate or deactivate a user",
)
async def set_user_status(
    user_id: int, data: UserStatusChange, user: AdminUser, service: Users
) -> BaseResponse[UserOut]:
    account = await service.set_status(user, user_id, data.is_active)
    return BaseResponse(data=profile_view(account))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a user",
)
async def delete_user(user_id: int, user: AdminUser, service: Users) -> Response:
    await service.delete_user(user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
