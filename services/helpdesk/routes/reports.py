"""
Report API Endpoints.

Ticket statistics for staff.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from services.helpdesk.dependencies import get_report_service
from services.helpdesk.schemas import ReportSummary
from services.helpdesk.services import ReportService
from shared.auth import User, require_staff
from shared.models import BaseResponse


router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary", response_model=BaseResponse[ReportSummary], summary="Ticket summary for a period")
async def report_summary(
    user: Annotated[User, Depends(require_staff)],
    service: Annotated[ReportService, Depends(get_report_service)],
    period: str = Query("mensal", description="semanal, mensal or trimestral"),
) -> BaseResponse[ReportSummary]:
    return BaseResponse(data=await service.summary(period))
