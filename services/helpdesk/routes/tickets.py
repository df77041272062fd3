"""
Ticket API Endpoints.

Ticket lifecycle, assignment, rating and the message thread.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from services.helpdesk.dependencies import get_ticket_service
from services.helpdesk.domain import TicketPriority, TicketStatus
from services.helpdesk.schemas import (
    AssignRequest,
    MessageCreate,
    MessageEdit,
    MessageOut,
    RateRequest,
    StatusChange,
    TicketCreate,
    TicketDetail,
    TicketSummary,
    TicketUpdate,
)
from services.helpdesk.services import TicketService
from shared.auth import User, get_current_active_user, require_admin, require_staff
from shared.config import settings
from shared.models import BaseResponse, PaginatedResponse


router = APIRouter(prefix="/tickets", tags=["tickets"])

CurrentUser = Annotated[User, Depends(get_current_active_user)]
StaffUser = Annotated[User, Depends(require_staff)]
AdminUser = Annotated[User, Depends(require_admin)]
Tickets = Annotated[TicketService, Depends(get_ticket_service)]


@router.post(
    "",
    response_model=BaseResponse[TicketDetail],
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket",
)
async def create_ticket(data: TicketCreate, user: CurrentUser, service: Tickets) -> BaseResponse[TicketDetail]:
    """
    Open a ticket.

    Customers always open tickets for themselves. Staff must name the
    customer with ``customerId``.
    """
    ticket = await service.create_ticket(user, data)
    return BaseResponse(data=await service.detail(user, ticket), message="Ticket created")


@router.get(
    "",
    response_model=BaseResponse[PaginatedResponse[TicketSummary]],
    summary="List tickets",
)
async def list_tickets(
    user: CurrentUser,
    service: Tickets,
    status_filter: TicketStatus | None = Query(None, alias="status"),
    priority: TicketPriority | None = Query(None),
    q: str | None = Query(None, max_length=200, description="Subject, description, number or requester"),
    overdue: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
) -> BaseResponse[PaginatedResponse[TicketSummary]]:
    """List tickets visible to the caller, newest first."""
    size = min(page_size or settings.helpdesk.default_page_size, settings.helpdesk.max_page_size)
    tickets, total = await service.list_tickets(
        user,
        status=status_filter,
        priority=priority,
        search=q,
        overdue=overdue,
        page=page,
        page_size=size,
    )
    items = await service.summaries(tickets)
    return BaseResponse(data=PaginatedResponse.build(items, total, page, size))


@router.get(
    "/by-number/{number}",
    response_model=BaseResponse[TicketDetail],
    summary="Get a ticket by its number",
)
async def get_ticket_by_number(number: str, user: CurrentUser, service: Tickets) -> BaseResponse[TicketDetail]:
    ticket = await service.get_ticket_by_number(user, number)
    return BaseResponse(data=await service.detail(user, ticket))


@router.get(
    "/{ticket_id}",
    response_model=BaseResponse[TicketDetail],
    summary="Get a ticket",
)
async def get_ticket(ticket_id: int, user: CurrentUser, service: Tickets) -> BaseResponse[TicketDetail]:
    ticket = await service.get_ticket(user, ticket_id)
    return BaseResponse(data=await service.detail(user, ticket))


@router.put(
    "/{ticket_id}",
    response_model=BaseResponse[TicketDetail],
    summary="Update ticket fields",
)
async def update_ticket(
    ticket_id: int, data: TicketUpdate, user: StaffUser, service: Tickets
) -> BaseResponse[TicketDetail]:
    ticket = await service.update_ticket(user, ticket_id, data)
    return BaseResponse(data=await service.detail(user, ticket), message="Ticket updated")


@router.put(
    "/{ticket_id}/status",
    response_model=BaseResponse[TicketDetail],
    summary="Change ticket status",
)
async def change_status(
    ticket_id: int, data: StatusChange, user: StaffUser, service: Tickets
) -> BaseResponse[TicketDetail]:
    """Apply a lifecycle transition. Disallowed transitions return 400 ``invalid_transition``."""
    ticket = await service.change_status(user, ticket_id, data.new_status)
    return BaseResponse(data=await service.detail(user, ticket), message="Status updated")


@router.put(
    "/{ticket_id}/assign",
    response_model=BaseResponse[TicketDetail],
    summary="Assign an agent",
)
async def assign_ticket(
    ticket_id: int, data: AssignRequest, user: StaffUser, service: Tickets
) -> BaseResponse[TicketDetail]:
    ticket = await service.assign(user, ticket_id, data.agent_id)
    return BaseResponse(data=await service.detail(user, ticket), message="Ticket assigned")


@router.put(
    "/{ticket_id}/rate",
    response_model=BaseResponse[TicketDetail],
    summary="Rate a ticket",
)
async def rate_ticket(
    ticket_id: int, data: RateRequest, user: CurrentUser, service: Tickets
) -> BaseResponse[TicketDetail]:
    """Record the requester's satisfaction. Ratings outside 1-5 leave the ticket unchanged."""
    ticket = await service.rate(user, ticket_id, data.rating, data.feedback)
    return BaseResponse(data=await service.detail(user, ticket))


@router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a ticket",
)
async def delete_ticket(ticket_id: int, user: AdminUser, service: Tickets) -> Response:
    await service.delete_ticket(user, ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{ticket_id}/messages",
    response_model=BaseResponse[list[MessageOut]],
    summary="List ticket messages",
)
async def list_messages(ticket_id: int, user: CurrentUser, service: Tickets) -> BaseResponse[list[MessageOut]]:
    messages = await service.list_messages(user, ticket_id)
    authors = await service.authors(messages)
    return BaseResponse(data=[service.message_view(m, authors.get(m.author_id)) for m in messages])


@router.post(
    "/{ticket_id}/messages",
    response_model=BaseResponse[MessageOut],
    status_code=status.HTTP_201_CREATED,
    summary="Post a message",
)
async def post_message(
    ticket_id: int, data: MessageCreate, user: CurrentUser, service: Tickets
) -> BaseResponse[MessageOut]:
    """Reply on a ticket. Internal notes are reserved for staff."""
    message = await service.post_message(
        user, ticket_id, data.content, is_internal=data.is_internal, message_type=data.type
    )
    authors = await service.authors([message])
    return BaseResponse(data=service.message_view(message, authors.get(message.author_id)), message="Message posted")


@router.put(
    "/{ticket_id}/messages/{message_id}",
    response_model=BaseResponse[MessageOut],
    summary="Edit a message",
)
async def edit_message(
    ticket_id: int, message_id: int, data: MessageEdit, user: CurrentUser, service: Tickets
) -> BaseResponse[MessageOut]:
    message = await service.edit_message(user, ticket_id, message_id, data.content)
    authors = await service.authors([message])
    return BaseResponse(data=service.message_view(message, authors.get(message.author_id)), message="Message updated")
