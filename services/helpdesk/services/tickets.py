"""
Ticket Service
==============

Application service for the ticket lifecycle: creation, listing, status
changes, assignment, rating, soft deletion and messages.

Lifecycle rules live on the ``Ticket`` entity, which reports rejection by
returning False. This service turns those results into API errors and
persists through the repositories.

Concurrency:
- Ticket numbers are unique in the repository; a clash is retried with a
  fresh number.
- Ticket writes are optimistic. On a version conflict the ticket is
  re-read and the operation re-applied, so a transition that is no longer
  valid fails as an invalid transition.

Version: 0.1.0
"""

from collections.abc import Callable
from datetime import datetime

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from services.helpdesk.domain import (
    AgentProfile,
    CustomerProfile,
    Department,
    Message,
    MessageType,
    Ticket,
    TicketPriority,
    TicketStatus,
    UserAccount,
    UserRole,
    can_access_ticket,
    can_view_message,
    generate_ticket_number,
    utc_now,
)
from services.helpdesk.errors import (
    AccessDeniedError,
    ConcurrencyConflictError,
    DuplicateTicketNumberError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from services.helpdesk.repositories import Repositories, TicketQuery
from services.helpdesk.schemas import (
    MessageOut,
    TicketCreate,
    TicketDetail,
    TicketSummary,
    TicketUpdate,
)
from shared.auth import ROLE_ADMIN, ROLE_AGENT, User
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)

SYSTEM_AUTHOR = "Sistema"


def actor_role(actor: User) -> UserRole:
    """Highest role carried by the token."""
    if ROLE_ADMIN in actor.roles:
        return UserRole.ADMIN
    if ROLE_AGENT in actor.roles:
        return UserRole.AGENT
    return UserRole.CUSTOMER


def default_sla_hours(priority: TicketPriority) -> int:
    """SLA deadline, in hours from creation, for a priority."""
    hours = settings.helpdesk
    if priority == TicketPriority.URGENT:
        return hours.sla_hours_urgent
    if priority == TicketPriority.HIGH:
        return hours.sla_hours_high
    if priority == TicketPriority.LOW:
        return hours.sla_hours_low
    return hours.sla_hours_normal


class TicketService:
    """Ticket operations on behalf of an authenticated caller."""

    def __init__(self, repos: Repositories, clock: Callable[[], datetime] = utc_now) -> None:
        self._repos = repos
        self._clock = clock

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create_ticket(self, actor: User, data: TicketCreate) -> Ticket:
        role = actor_role(actor)

        department = await self._repos.departments.get(data.department_id)
        if department is None or not department.is_selectable:
            raise ValidationFailedError.for_field("departmentId", f"Department {data.department_id} does not exist")

        customer = await self._resolve_customer(actor, role, data.customer_id)

        ticket = Ticket(
            subject=data.subject.strip(),
            description=data.description.strip(),
            priority=data.priority,
            customer_id=customer.id,
            department_id=department.id,
            sla_hours=default_sla_hours(data.priority),
        )

        saved = await self._insert_with_unique_number(ticket)

        customer.record_ticket_opened(saved.created_at)
        await self._repos.users.update(customer)

        logger.info(
            "ticket_created",
            ticket_id=saved.id,
            number=saved.number,
            priority=saved.priority.value,
            department_id=saved.department_id,
            customer_id=saved.customer_id,
            created_by=actor.id,
        )
        return saved

    async def _resolve_customer(self, actor: User, role: UserRole, customer_id: int | None) -> UserAccount:
        if role == UserRole.CUSTOMER:
            customer = await self._repos.users.get(actor.id)
            if customer is None:
                raise NotFoundError("User", actor.id)
            return customer

        if customer_id is None:
            raise ValidationFailedError.for_field("customerId", "customerId is required when staff open a ticket")

        customer = await self._repos.users.get(customer_id)
        if customer is None or not isinstance(customer.profile, CustomerProfile):
            raise ValidationFailedError.for_field("customerId", f"Customer {customer_id} does not exist")
        return customer

    async def _insert_with_unique_number(self, ticket: Ticket) -> Ticket:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(DuplicateTicketNumberError),
            stop=stop_after_attempt(settings.helpdesk.number_retry_attempts),
            wait=wait_random(0.001, 0.005),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                "ticket_number_retry",
                attempt=retry_state.attempt_number,
            ),
        )
        return await retrying(self._insert, ticket)

    async def _insert(self, ticket: Ticket) -> Ticket:
        now = self._clock()
        ticket.created_at = now
        ticket.number = generate_ticket_number(now)
        return await self._repos.tickets.add(ticket)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_ticket(self, actor: User, ticket_id: int) -> Ticket:
        ticket = await self._repos.tickets.get(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        self._ensure_access(actor, ticket)
        return ticket

    async def get_ticket_by_number(self, actor: User, number: str) -> Ticket:
        ticket = await self._repos.tickets.get_by_number(number)
        if ticket is None:
            raise NotFoundError("Ticket", number)
        self._ensure_access(actor, ticket)
        return ticket

    async def list_tickets(
        self,
        actor: User,
        status: TicketStatus | None = None,
        priority: TicketPriority | None = None,
        search: str | None = None,
        overdue: bool | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> tuple[list[Ticket], int]:
        size = min(page_size or settings.helpdesk.default_page_size, settings.helpdesk.max_page_size)
        query = TicketQuery(
            status=status,
            priority=priority,
            search=search,
            overdue=overdue,
            now=self._clock(),
            offset=(max(page, 1) - 1) * size,
            limit=size,
        )
        if actor_role(actor) == UserRole.CUSTOMER:
            query.customer_id = actor.id
        return await self._repos.tickets.list(query)

    def _ensure_access(self, actor: User, ticket: Ticket) -> None:
        if not can_access_ticket(actor_role(actor), actor.id, ticket):
            raise AccessDeniedError("You do not have access to this ticket")

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def _mutate(
        self,
        actor: User,
        ticket_id: int,
        apply: Callable[[Ticket], None],
        action: str,
    ) -> Ticket:
        """Load, apply and write with optimistic retries on version conflicts."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ConcurrencyConflictError),
            stop=stop_after_attempt(settings.helpdesk.update_retry_attempts),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                "ticket_update_conflict",
                ticket_id=ticket_id,
                action=action,
                attempt=retry_state.attempt_number,
            ),
        )
        return await retrying(self._apply_and_write, actor, ticket_id, apply)

    async def _apply_and_write(self, actor: User, ticket_id: int, apply: Callable[[Ticket], None]) -> Ticket:
        ticket = await self.get_ticket(actor, ticket_id)
        apply(ticket)
        return await self._repos.tickets.update(ticket)

    async def change_status(self, actor: User, ticket_id: int, new_status: TicketStatus) -> Ticket:
        previous: dict[str, TicketStatus] = {}

        def apply(ticket: Ticket) -> None:
            previous["status"] = ticket.status
            if not ticket.change_status(new_status, self._clock()):
                raise InvalidTransitionError(ticket.status.value, new_status.value)

        saved = await self._mutate(actor, ticket_id, apply, "change_status")
        logger.info(
            "ticket_status_changed",
            ticket_id=ticket_id,
            old_status=previous["status"].value,
            new_status=new_status.value,
            changed_by=actor.id,
        )
        return saved

    async def assign(self, actor: User, ticket_id: int, agent_id: int) -> Ticket:
        # Ticket existence is checked first so a missing ticket reports 404 for the ticket
        await self.get_ticket(actor, ticket_id)

        agent = await self._repos.users.get(agent_id)
        if agent is None or not isinstance(agent.profile, AgentProfile):
            raise NotFoundError("Agent", agent_id)

        saved = await self._mutate(
            actor,
            ticket_id,
            lambda ticket: ticket.assign_to_agent(agent_id, self._clock()),
            "assign",
        )
        logger.info("ticket_assigned", ticket_id=ticket_id, agent_id=agent_id, status=saved.status.value)
        return saved

    async def update_ticket(self, actor: User, ticket_id: int, data: TicketUpdate) -> Ticket:
        if data.department_id is not None:
            department = await self._repos.departments.get(data.department_id)
            if department is None or not department.is_selectable:
                raise ValidationFailedError.for_field(
                    "departmentId", f"Department {data.department_id} does not exist"
                )

        def apply(ticket: Ticket) -> None:
            if data.subject is not None:
                ticket.subject = data.subject.strip()
            if data.description is not None:
                ticket.description = data.description.strip()
            if data.priority is not None:
                ticket.priority = data.priority
            if data.department_id is not None:
                ticket.department_id = data.department_id
            ticket.updated_at = self._clock()

        saved = await self._mutate(actor, ticket_id, apply, "update")
        logger.info("ticket_updated", ticket_id=ticket_id, updated_by=actor.id)
        return saved

    async def rate(self, actor: User, ticket_id: int, rating: int, feedback: str | None = None) -> Ticket:
        """
        Record the requester's rating.

        Out-of-range ratings are ignored: the ticket is returned unchanged
        and nothing is written.
        """
        ticket = await self.get_ticket(actor, ticket_id)
        if ticket.customer_id != actor.id:
            raise AccessDeniedError("Only the requester can rate this ticket")

        if not Ticket.is_valid_rating(rating):
            logger.info("ticket_rating_ignored", ticket_id=ticket_id, rating=rating)
            return ticket

        saved = await self._mutate(
            actor,
            ticket_id,
            lambda t: t.rate(rating, feedback, self._clock()),
            "rate",
        )
        logger.info("ticket_rated", ticket_id=ticket_id, rating=rating)
        return saved

    async def delete_ticket(self, actor: User, ticket_id: int) -> None:
        await self._mutate(actor, ticket_id, lambda t: t.soft_delete(self._clock()), "delete")
        logger.info("ticket_deleted", ticket_id=ticket_id, deleted_by=actor.id)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def list_messages(self, actor: User, ticket_id: int) -> list[Message]:
        ticket = await self.get_ticket(actor, ticket_id)
        role = actor_role(actor)
        messages = await self._repos.messages.list_for_ticket(ticket_id)
        return [m for m in messages if can_view_message(role, actor.id, m, ticket)]

    async def post_message(
        self,
        actor: User,
        ticket_id: int,
        content: str,
        is_internal: bool = False,
        message_type: MessageType | None = None,
    ) -> Message:
        ticket = await self.get_ticket(actor, ticket_id)
        role = actor_role(actor)
        staff = role != UserRole.CUSTOMER

        if is_internal and not staff:
            raise AccessDeniedError("Only staff can post internal notes")

        if message_type is None or not staff:
            if is_internal:
                message_type = MessageType.INTERNAL_NOTE
            elif staff:
                message_type = MessageType.AGENT_MESSAGE
            else:
                message_type = MessageType.CUSTOMER_MESSAGE

        message = await self._repos.messages.add(
            Message(
                ticket_id=ticket.id,
                author_id=actor.id,
                content=content.strip(),
                message_type=message_type,
                is_internal=is_internal,
                created_at=self._clock(),
            )
        )

        if staff and not is_internal and ticket.first_response_at is None:
            await self._mutate(
                actor,
                ticket_id,
                lambda t: t.set_first_response(message.created_at),
                "first_response",
            )
            logger.info("ticket_first_response", ticket_id=ticket_id, agent_id=actor.id)

        logger.info(
            "ticket_message_posted",
            ticket_id=ticket_id,
            message_id=message.id,
            internal=is_internal,
            author_id=actor.id,
        )
        return message

    async def edit_message(self, actor: User, ticket_id: int, message_id: int, content: str) -> Message:
        ticket = await self.get_ticket(actor, ticket_id)
        message = await self._repos.messages.get(message_id)
        if message is None or message.ticket_id != ticket.id:
            raise NotFoundError("Message", message_id)
        if not can_view_message(actor_role(actor), actor.id, message, ticket):
            raise NotFoundError("Message", message_id)
        if message.author_id != actor.id:
            raise AccessDeniedError("Only the author can edit this message")

        message.edit(content.strip(), self._clock())
        saved = await self._repos.messages.update(message)
        logger.info("ticket_message_edited", ticket_id=ticket_id, message_id=message_id)
        return saved

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    async def summaries(self, tickets: list[Ticket]) -> list[TicketSummary]:
        """Ticket list entries with names and message counts filled in."""
        if not tickets:
            return []

        departments = {d.id: d for d in await self._repos.departments.list_all()}
        user_ids = [t.customer_id for t in tickets] + [
            t.assigned_agent_id for t in tickets if t.assigned_agent_id is not None
        ]
        users = await self._repos.users.get_many(user_ids)
        counts = await self._repos.messages.count_by_ticket([t.id for t in tickets if t.id is not None])
        now = self._clock()

        return [
            TicketSummary(**self._summary_fields(t, departments, users, counts.get(t.id, 0), now))
            for t in tickets
        ]

    async def detail(self, actor: User, ticket: Ticket) -> TicketDetail:
        """Full view including the messages ``actor`` may see."""
        departments = {d.id: d for d in await self._repos.departments.list_all()}
        messages = await self.list_messages(actor, ticket.id)

        user_ids = [ticket.customer_id, *(m.author_id for m in messages)]
        if ticket.assigned_agent_id is not None:
            user_ids.append(ticket.assigned_agent_id)
        users = await self._repos.users.get_many(user_ids)
        counts = await self._repos.messages.count_by_ticket([ticket.id])

        return TicketDetail(
            **self._summary_fields(ticket, departments, users, counts.get(ticket.id, 0), self._clock()),
            description=ticket.description,
            customer_rating=ticket.customer_rating,
            customer_feedback=ticket.customer_feedback,
            version=ticket.version,
            messages=[self.message_view(m, users.get(m.author_id)) for m in messages],
        )

    async def authors(self, messages: list[Message]) -> dict[int, UserAccount]:
        return await self._repos.users.get_many([m.author_id for m in messages])

    @staticmethod
    def message_view(message: Message, author: UserAccount | None) -> MessageOut:
        return MessageOut(
            id=message.id,
            ticket_id=message.ticket_id,
            author_id=message.author_id,
            author_name=author.full_name if author is not None else SYSTEM_AUTHOR,
            content=message.content,
            type=message.message_type,
            is_internal=message.is_internal,
            is_edited=message.is_edited,
            created_at=message.created_at,
            updated_at=message.updated_at,
            edited_at=message.edited_at,
        )

    @staticmethod
    def _summary_fields(
        ticket: Ticket,
        departments: dict[int | None, Department],
        users: dict[int, UserAccount],
        message_count: int,
        now: datetime,
    ) -> dict:
        department = departments.get(ticket.department_id)
        customer = users.get(ticket.customer_id)
        agent = users.get(ticket.assigned_agent_id) if ticket.assigned_agent_id is not None else None

        return {
            "id": ticket.id,
            "number": ticket.number,
            "subject": ticket.subject,
            "status": ticket.status,
            "priority": ticket.priority,
            "department_id": ticket.department_id,
            "department": department.name if department is not None else "",
            "customer_id": ticket.customer_id,
            "customer": customer.full_name if customer is not None else "",
            "assigned_agent_id": ticket.assigned_agent_id,
            "assigned_agent": agent.full_name if agent is not None else None,
            "created_at": ticket.created_at,
            "updated_at": ticket.updated_at,
            "is_overdue": ticket.is_overdue(now),
            "sla_hours": ticket.sla_hours,
            "sla_deadline": ticket.sla_deadline,
            "message_count": message_count,
            "resolution_time_hours": ticket.resolution_time_hours,
            "first_response_time_hours": ticket.first_response_time_hours,
            "first_response_at": ticket.first_response_at,
            "resolved_at": ticket.resolved_at,
            "closed_at": ticket.closed_at,
        }
