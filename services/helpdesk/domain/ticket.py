"""
Ticket entity and lifecycle state machine.

The entity never raises on a rejected operation. Mutators return a boolean
(or silently ignore out-of-range input) and the application service turns
failures into API errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from services.helpdesk.domain.enums import (
    RESOLVED_STATUSES,
    TicketPriority,
    TicketStatus,
)


NUMBER_PREFIX = "TCK-"

SUBJECT_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
FEEDBACK_MAX_LENGTH = 500

RATING_MIN = 1
RATING_MAX = 5


# Directed edges; cancellation is allowed from every state and handled separately
ALLOWED_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.OPEN: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CANCELLED}
    ),
    TicketStatus.IN_PROGRESS: frozenset(
        {
            TicketStatus.WAITING_CUSTOMER,
            TicketStatus.WAITING_AGENT,
            TicketStatus.RESOLVED,
            TicketStatus.CANCELLED,
        }
    ),
    TicketStatus.WAITING_CUSTOMER: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CANCELLED}
    ),
    TicketStatus.WAITING_AGENT: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CANCELLED}
    ),
    TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED, TicketStatus.IN_PROGRESS}),
    TicketStatus.CLOSED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    """Check the transition table."""
    if target == TicketStatus.CANCELLED:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def generate_ticket_number(now: datetime | None = None) -> str:
    """
    Build a human-readable ticket number.

    Format is ``TCK-yyMMddHHmmssfff`` in UTC. Uniqueness is enforced by the
    repository, not here.
    """
    moment = (now or utc_now()).astimezone(UTC)
    return f"{NUMBER_PREFIX}{moment:%y%m%d%H%M%S}{moment.microsecond // 1000:03d}"


def _hours_between(start: datetime, end: datetime | None) -> float | None:
    if end is None:
        return None
    return (end - start).total_seconds() / 3600


@dataclass
class Ticket:
    """A support ticket and its lifecycle rules."""

    subject: str
    description: str
    customer_id: int
    department_id: int
    number: str = ""
    priority: TicketPriority = TicketPriority.NORMAL
    status: TicketStatus = TicketStatus.OPEN
    id: int | None = None
    assigned_agent_id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None
    first_response_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    sla_hours: int | None = None
    customer_rating: int | None = None
    customer_feedback: str | None = None
    is_deleted: bool = False
    version: int = 1

    # Lifecycle

    def change_status(self, new_status: TicketStatus, now: datetime | None = None) -> bool:
        """
        Move to ``new_status`` if the transition table allows it.

        Entering Resolved stamps ``resolved_at`` every time. Entering Closed
        stamps ``closed_at`` and backfills ``resolved_at`` only when unset.
        Returns False and leaves the ticket untouched otherwise.
        """
        if not can_transition(self.status, new_status):
            return False

        moment = now or utc_now()
        self.status = new_status

        if new_status == TicketStatus.RESOLVED:
            self.resolved_at = moment
        elif new_status == TicketStatus.CLOSED:
            self.closed_at = moment
            if self.resolved_at is None:
                self.resolved_at = moment

        self.updated_at = moment
        return True

    def assign_to_agent(self, agent_id: int, now: datetime | None = None) -> None:
        """Assign an agent. An Open ticket moves straight to InProgress."""
        self.assigned_agent_id = agent_id
        if self.status == TicketStatus.OPEN:
            self.status = TicketStatus.IN_PROGRESS
        self.updated_at = now or utc_now()

    def set_first_response(self, now: datetime | None = None) -> bool:
        """Stamp the first staff response once. Returns True when it was stamped."""
        if self.first_response_at is not None:
            return False
        moment = now or utc_now()
        self.first_response_at = moment
        self.updated_at = moment
        return True

    def rate(self, rating: int, feedback: str | None = None, now: datetime | None = None) -> bool:
        """
        Record customer satisfaction.

        Ratings outside 1-5 are ignored without error; nothing changes,
        ``updated_at`` included.
        """
        if not self.is_valid_rating(rating):
            return False
        self.customer_rating = rating
        self.customer_feedback = feedback
        self.updated_at = now or utc_now()
        return True

    @staticmethod
    def is_valid_rating(rating: int) -> bool:
        return RATING_MIN <= rating <= RATING_MAX

    def soft_delete(self, now: datetime | None = None) -> None:
        self.is_deleted = True
        self.updated_at = now or utc_now()

    # Derived values

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.sla_hours is None:
            return False
        if self.status in RESOLVED_STATUSES:
            return False
        moment = now or utc_now()
        return moment > self.created_at + timedelta(hours=self.sla_hours)

    @property
    def sla_deadline(self) -> datetime | None:
        if self.sla_hours is None:
            return None
        return self.created_at + timedelta(hours=self.sla_hours)

    @property
    def resolution_time_hours(self) -> float | None:
        return _hours_between(self.created_at, self.resolved_at)

    @property
    def first_response_time_hours(self) -> float | None:
        return _hours_between(self.created_at, self.first_response_at)
