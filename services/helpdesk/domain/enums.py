"""Enumerations shared by the helpdesk domain records."""

from __future__ import annotations

from enum import Enum, IntEnum


class TicketStatus(str, Enum):
    """Lifecycle state of a ticket."""

    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    WAITING_CUSTOMER = "WaitingCustomer"
    WAITING_AGENT = "WaitingAgent"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    CANCELLED = "Cancelled"


class TicketPriority(str, Enum):
    """Ticket urgency as chosen by the requester or staff."""

    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class MessageType(IntEnum):
    """Kind of ticket comment."""

    CUSTOMER_MESSAGE = 1
    AGENT_MESSAGE = 2
    INTERNAL_NOTE = 3
    SYSTEM_MESSAGE = 4


class UserRole(str, Enum):
    """Discriminator for user accounts."""

    CUSTOMER = "Customer"
    AGENT = "Agent"
    ADMIN = "Admin"


RESOLVED_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})

PENDING_STATUSES = frozenset(
    {
        TicketStatus.OPEN,
        TicketStatus.IN_PROGRESS,
        TicketStatus.WAITING_CUSTOMER,
        TicketStatus.WAITING_AGENT,
    }
)
