"""Helpdesk domain records and lifecycle rules."""

from services.helpdesk.domain.department import DEFAULT_DEPARTMENTS, Department
from services.helpdesk.domain.enums import (
    PENDING_STATUSES,
    RESOLVED_STATUSES,
    MessageType,
    TicketPriority,
    TicketStatus,
    UserRole,
)
from services.helpdesk.domain.message import Message
from services.helpdesk.domain.ticket import (
    ALLOWED_TRANSITIONS,
    Ticket,
    can_transition,
    generate_ticket_number,
    utc_now,
)
from services.helpdesk.domain.users import (
    AdminProfile,
    AgentProfile,
    CustomerProfile,
    UserAccount,
    can_access_ticket,
    can_view_message,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AdminProfile",
    "AgentProfile",
    "CustomerProfile",
    "DEFAULT_DEPARTMENTS",
    "Department",
    "Message",
    "MessageType",
    "PENDING_STATUSES",
    "RESOLVED_STATUSES",
    "Ticket",
    "TicketPriority",
    "TicketStatus",
    "UserAccount",
    "UserRole",
    "can_access_ticket",
    "can_transition",
    "can_view_message",
    "generate_ticket_number",
    "utc_now",
]
