"""
Advisory Schemas
================

Payloads for the triage advice endpoint.

Version: 0.1.0
"""

from pydantic import Field

from services.helpdesk.schemas.base import ApiModel


class AnalyzeRequest(ApiModel):
    title: str = Field(..., max_length=200)
    description: str = Field(..., max_length=2000)
    done_actions: list[str] = Field(default_factory=list)
    rejected_actions: list[str] = Field(default_factory=list)
    prior_suggestions: list[str] = Field(default_factory=list)


class AnalyzeResponse(ApiModel):
    suggestions: list[str] = Field(default_factory=list)
    predicted_department_id: int | None = None
    predicted_department_name: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    priority_hint: str | None = None
    rationale: str | None = None
    source: str
    next_action: str | None = None
    follow_up_questions: list[str] = Field(default_factory=list)
