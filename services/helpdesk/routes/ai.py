"""
Triage Advice API Endpoints.

Suggestions, department guess and priority hint for a ticket draft.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from services.helpdesk.dependencies import get_advisory_service
from services.helpdesk.schemas import AnalyzeRequest, AnalyzeResponse
from services.helpdesk.services import AdvisoryService
from shared.auth import User, get_current_active_user
from shared.models import BaseResponse


router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/analyze", response_model=BaseResponse[AnalyzeResponse], summary="Analyze a ticket draft")
async def analyze(
    data: AnalyzeRequest,
    user: Annotated[User, Depends(get_current_active_user)],
    service: Annotated[AdvisoryService, Depends(get_advisory_service)],
) -> BaseResponse[AnalyzeResponse]:
    """
    Triage advice for a ticket draft.

    Uses the external classifier when configured and falls back to keyword
    heuristics otherwise. ``source`` tells which one answered.
    """
    result = await service.analyze(
        data.title,
        data.description,
        done_actions=data.done_actions,
        rejected_actions=data.rejected_actions,
        prior_suggestions=data.prior_suggestions,
    )
    return BaseResponse(data=AnalyzeResponse(**result.to_dict()))
