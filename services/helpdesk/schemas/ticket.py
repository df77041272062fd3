"""
Ticket Schemas
==============

Request and response models for tickets and their messages.

Version: 0.1.0
"""

from datetime import datetime

from pydantic import Field, field_validator

from services.helpdesk.domain.enums import MessageType, TicketPriority, TicketStatus
from services.helpdesk.schemas.base import ApiModel, not_blank


class TicketCreate(ApiModel):
    """Request model for opening a ticket."""

    subject: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    priority: TicketPriority = TicketPriority.NORMAL
    department_id: int
    # Required when staff open a ticket on behalf of a customer
    customer_id: int | None = None

    @field_validator("subject", "description")
    @classmethod
    def reject_blank(cls, v: str | None) -> str | None:
        return not_blank(v)


class TicketUpdate(ApiModel):
    """Partial update by staff."""

    subject: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    priority: TicketPriority | None = None
    department_id: int | None = None

    @field_validator("subject", "description")
    @classmethod
    def reject_blank(cls, v: str | None) -> str | None:
        return not_blank(v)


class StatusChange(ApiModel):
    new_status: TicketStatus


class AssignRequest(ApiModel):
    agent_id: int


class RateRequest(ApiModel):
    # Range is not validated here: out-of-range ratings are ignored, not rejected
    rating: int
    feedback: str | None = Field(default=None, max_length=500)


class MessageCreate(ApiModel):
    content: str = Field(..., min_length=1, max_length=5000)
    type: MessageType | None = None
    is_internal: bool = False

    @field_validator("content")
    @classmethod
    def reject_blank(cls, v: str | None) -> str | None:
        return not_blank(v)


class MessageEdit(ApiModel):
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def reject_blank(cls, v: str | None) -> str | None:
        return not_blank(v)


class MessageOut(ApiModel):
    """A message as seen by the caller."""

    id: int
    ticket_id: int
    author_id: int
    author_name: str
    content: str
    type: MessageType
    is_internal: bool
    is_edited: bool
    created_at: datetime
    updated_at: datetime | None = None
    edited_at: datetime | None = None


class TicketSummary(ApiModel):
    """Ticket list entry with derived metrics."""

    id: int
    number: str
    subject: str
    status: TicketStatus
    priority: TicketPriority
    department_id: int
    department: str
    customer_id: int
    customer: str
    assigned_agent_id: int | None = None
    assigned_agent: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    is_overdue: bool = False
    sla_hours: int | None = None
    sla_deadline: datetime | None = None
    message_count: int = 0
    resolution_time_hours: float | None = None
    first_response_time_hours: float | None = None
    first_response_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None


class TicketDetail(TicketSummary):
    """Full ticket with the messages visible to the caller."""

    description: str
    customer_rating: int | None = None
    customer_feedback: str | None = None
    version: int = 1
    messages: list[MessageOut] = Field(default_factory=list)
