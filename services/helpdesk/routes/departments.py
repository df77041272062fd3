"""
Department API Endpoints.

Department directory and keyword-based routing suggestions.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from services.helpdesk.dependencies import RepositoriesDep
from services.helpdesk.domain import Department
from services.helpdesk.ml.routing import guess_department
from services.helpdesk.schemas import DepartmentOut, DepartmentSuggestion, DepartmentSuggestRequest
from shared.auth import User, get_current_active_user
from shared.logging import get_logger
from shared.models import BaseResponse


logger = get_logger(__name__)

router = APIRouter(prefix="/departments", tags=["departments"])

CurrentUser = Annotated[User, Depends(get_current_active_user)]


def _department_out(department: Department, active_tickets: int = 0) -> DepartmentOut:
    return DepartmentOut(
        id=department.id,
        name=department.name,
        description=department.description,
        color=department.color,
        active_tickets=active_tickets,
    )


@router.get("", response_model=BaseResponse[list[DepartmentOut]], summary="List active departments")
async def list_departments(user: CurrentUser, repos: RepositoriesDep) -> BaseResponse[list[DepartmentOut]]:
    """Active departments ordered by name, with their open ticket counts."""
    departments = await repos.departments.list_active()
    counts = await repos.tickets.count_active_by_department()
    return BaseResponse(data=[_department_out(d, counts.get(d.id, 0)) for d in departments])


@router.post(
    "/suggest",
    response_model=BaseResponse[DepartmentSuggestion],
    summary="Suggest a department for a ticket text",
)
async def suggest_department(
    data: DepartmentSuggestRequest, user: CurrentUser, repos: RepositoriesDep
) -> BaseResponse[DepartmentSuggestion]:
    departments = await repos.departments.list_active()
    guess = guess_department(data.title, data.description, departments)
    logger.info("department_suggested", department=guess.name if guess else None)
    return BaseResponse(
        data=DepartmentSuggestion(department=_department_out(guess) if guess is not None else None)
    )
