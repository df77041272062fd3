"""Tests for the ticket application service."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from services.helpdesk.domain import (
    MessageType,
    Ticket,
    TicketPriority,
    TicketStatus,
    UserAccount,
    generate_ticket_number,
)
from services.helpdesk.errors import (
    AccessDeniedError,
    ConcurrencyConflictError,
    DuplicateTicketNumberError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from services.helpdesk.repositories import Repositories
from services.helpdesk.schemas import TicketCreate, TicketUpdate
from services.helpdesk.services import TicketService
from shared.auth import User


NOW = datetime(2025, 6, 30, 12, 0, tzinfo=UTC)


class SteppingClock:
    """Advances one millisecond per call."""

    def __init__(self, start: datetime = NOW) -> None:
        self.current = start - timedelta(milliseconds=1)

    def __call__(self) -> datetime:
        self.current += timedelta(milliseconds=1)
        return self.current


class RacingTicketRepository:
    """Lets another writer cancel the ticket right before the first update lands."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.updates = 0

    def __getattr__(self, name: str):
        return getattr(self._inner, name)

    async def update(self, ticket: Ticket) -> Ticket:
        self.updates += 1
        if self.updates == 1:
            rival = await self._inner.get(ticket.id)
            rival.change_status(TicketStatus.CANCELLED)
            await self._inner.update(rival)
        return await self._inner.update(ticket)


class AlwaysConflictingTicketRepository:
    def __init__(self, inner) -> None:
        self._inner = inner
        self.updates = 0

    def __getattr__(self, name: str):
        return getattr(self._inner, name)

    async def update(self, ticket: Ticket) -> Ticket:
        self.updates += 1
        raise ConcurrencyConflictError(f"Ticket {ticket.id} was modified concurrently")


@pytest.fixture
def service(repos: Repositories, accounts: dict[str, UserAccount]) -> TicketService:
    return TicketService(repos, clock=SteppingClock())


def new_ticket(**overrides) -> TicketCreate:
    data = {
        "subject": "Sem acesso ao ERP",
        "description": "Senha expirada e sem login desde ontem",
        "priority": TicketPriority.HIGH,
        "department_id": 4,
    }
    data.update(overrides)
    return TicketCreate(**data)


class TestCreate:
    @pytest.mark.asyncio
    async def test_customer_opens_for_themselves(
        self, service: TicketService, repos: Repositories, customer_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket(customer_id=4))

        assert ticket.customer_id == customer_user.id
        assert ticket.status == TicketStatus.OPEN
        assert ticket.number == generate_ticket_number(ticket.created_at)
        assert ticket.sla_hours == 8

        customer = await repos.users.get(customer_user.id)
        assert customer.profile.total_tickets == 1
        assert customer.profile.last_ticket_at == ticket.created_at

    @pytest.mark.asyncio
    async def test_staff_must_name_customer(self, service: TicketService, agent_user: User) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_ticket(agent_user, new_ticket())

        assert "customerId" in exc_info.value.details["fields"]

    @pytest.mark.asyncio
    async def test_staff_cannot_open_for_an_agent(self, service: TicketService, agent_user: User) -> None:
        with pytest.raises(ValidationFailedError):
            await service.create_ticket(agent_user, new_ticket(customer_id=3))

    @pytest.mark.asyncio
    async def test_unknown_department(self, service: TicketService, customer_user: User) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_ticket(customer_user, new_ticket(department_id=99))

        assert "departmentId" in exc_info.value.details["fields"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "priority,hours",
        [(TicketPriority.URGENT, 4), (TicketPriority.HIGH, 8), (TicketPriority.NORMAL, 24), (TicketPriority.LOW, 48)],
    )
    async def test_default_sla(
        self, service: TicketService, customer_user: User, priority: TicketPriority, hours: int
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket(priority=priority))

        assert ticket.sla_hours == hours

    @pytest.mark.asyncio
    async def test_number_clash_is_retried(
        self, repos: Repositories, accounts: dict[str, UserAccount], customer_user: User
    ) -> None:
        await repos.tickets.add(
            Ticket(subject="a", description="b", customer_id=5, department_id=4, number=generate_ticket_number(NOW))
        )
        service = TicketService(repos, clock=SteppingClock(NOW))

        ticket = await service.create_ticket(customer_user, new_ticket())

        assert ticket.number == generate_ticket_number(NOW + timedelta(milliseconds=1))

    @pytest.mark.asyncio
    async def test_persistent_number_clash_gives_up(
        self, repos: Repositories, accounts: dict[str, UserAccount], customer_user: User
    ) -> None:
        await repos.tickets.add(
            Ticket(subject="a", description="b", customer_id=5, department_id=4, number=generate_ticket_number(NOW))
        )
        service = TicketService(repos, clock=lambda: NOW)

        with pytest.raises(DuplicateTicketNumberError):
            await service.create_ticket(customer_user, new_ticket())


class TestReads:
    @pytest.mark.asyncio
    async def test_other_customer_is_denied(
        self, service: TicketService, customer_user: User, other_customer_user: User, agent_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        with pytest.raises(AccessDeniedError):
            await service.get_ticket(other_customer_user, ticket.id)
        assert (await service.get_ticket(agent_user, ticket.id)).id == ticket.id

    @pytest.mark.asyncio
    async def test_missing_ticket(self, service: TicketService, agent_user: User) -> None:
        with pytest.raises(NotFoundError):
            await service.get_ticket(agent_user, 404)
        with pytest.raises(NotFoundError):
            await service.get_ticket_by_number(agent_user, "TCK-000000000000000")

    @pytest.mark.asyncio
    async def test_customers_list_only_their_tickets(
        self, service: TicketService, customer_user: User, other_customer_user: User, agent_user: User
    ) -> None:
        await service.create_ticket(customer_user, new_ticket())
        await service.create_ticket(other_customer_user, new_ticket(subject="Boleto duplicado", department_id=1))

        own, own_total = await service.list_tickets(customer_user)
        everything, total = await service.list_tickets(agent_user)

        assert own_total == 1 and own[0].customer_id == customer_user.id
        assert total == 2
        assert everything[0].subject == "Boleto duplicado"

    @pytest.mark.asyncio
    async def test_search_matches_requester(
        self, service: TicketService, customer_user: User, other_customer_user: User, agent_user: User
    ) -> None:
        await service.create_ticket(customer_user, new_ticket())
        await service.create_ticket(other_customer_user, new_ticket(subject="Boleto duplicado", department_id=1))

        by_name, _ = await service.list_tickets(agent_user, search="diego")
        by_text, _ = await service.list_tickets(agent_user, search="ERP")

        assert [t.customer_id for t in by_name] == [other_customer_user.id]
        assert [t.customer_id for t in by_text] == [customer_user.id]

    @pytest.mark.asyncio
    async def test_overdue_filter(self, repos: Repositories, customer_user: User, agent_user: User) -> None:
        clock = SteppingClock()
        service = TicketService(repos, clock=clock)
        await service.create_ticket(customer_user, new_ticket(priority=TicketPriority.URGENT))
        await service.create_ticket(customer_user, new_ticket(priority=TicketPriority.LOW))

        clock.current = NOW + timedelta(hours=5)
        overdue, total = await service.list_tickets(agent_user, overdue=True)

        assert total == 1
        assert overdue[0].priority == TicketPriority.URGENT

    @pytest.mark.asyncio
    async def test_pagination(self, service: TicketService, customer_user: User) -> None:
        for index in range(3):
            await service.create_ticket(customer_user, new_ticket(subject=f"Chamado {index}"))

        page, total = await service.list_tickets(customer_user, page=2, page_size=2)

        assert total == 3
        assert [t.subject for t in page] == ["Chamado 0"]


class TestMutations:
    @pytest.mark.asyncio
    async def test_invalid_transition(self, service: TicketService, customer_user: User, agent_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        with pytest.raises(InvalidTransitionError):
            await service.change_status(agent_user, ticket.id, TicketStatus.WAITING_CUSTOMER)

        assert (await service.get_ticket(agent_user, ticket.id)).status == TicketStatus.OPEN

    @pytest.mark.asyncio
    async def test_version_increments(self, service: TicketService, customer_user: User, agent_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        saved = await service.change_status(agent_user, ticket.id, TicketStatus.IN_PROGRESS)

        assert saved.version == ticket.version + 1

    @pytest.mark.asyncio
    async def test_race_is_reapplied_against_fresh_state(
        self, repos: Repositories, customer_user: User, agent_user: User
    ) -> None:
        ticket = await TicketService(repos).create_ticket(customer_user, new_ticket())
        racing = RacingTicketRepository(repos.tickets)
        service = TicketService(replace(repos, tickets=racing))

        # The rival cancelled first; resolving a Cancelled ticket is not allowed
        with pytest.raises(InvalidTransitionError):
            await service.change_status(agent_user, ticket.id, TicketStatus.RESOLVED)

        stored = await repos.tickets.get(ticket.id)
        assert stored.status == TicketStatus.CANCELLED
        assert racing.updates == 1

    @pytest.mark.asyncio
    async def test_race_with_compatible_change_succeeds(
        self, repos: Repositories, customer_user: User, agent_user: User
    ) -> None:
        ticket = await TicketService(repos).create_ticket(customer_user, new_ticket())
        racing = RacingTicketRepository(repos.tickets)
        service = TicketService(replace(repos, tickets=racing))

        saved = await service.change_status(agent_user, ticket.id, TicketStatus.CANCELLED)

        assert saved.status == TicketStatus.CANCELLED
        assert racing.updates == 2

    @pytest.mark.asyncio
    async def test_exhausted_conflicts_surface(
        self, repos: Repositories, customer_user: User, agent_user: User
    ) -> None:
        ticket = await TicketService(repos).create_ticket(customer_user, new_ticket())
        conflicting = AlwaysConflictingTicketRepository(repos.tickets)
        service = TicketService(replace(repos, tickets=conflicting))

        with pytest.raises(ConcurrencyConflictError):
            await service.change_status(agent_user, ticket.id, TicketStatus.IN_PROGRESS)
        assert conflicting.updates == 3

    @pytest.mark.asyncio
    async def test_assign(self, service: TicketService, customer_user: User, agent_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        saved = await service.assign(agent_user, ticket.id, 3)

        assert saved.assigned_agent_id == 3
        assert saved.status == TicketStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_assign_checks_ticket_then_agent(
        self, service: TicketService, customer_user: User, agent_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        with pytest.raises(NotFoundError) as missing_ticket:
            await service.assign(agent_user, 999, 99)
        with pytest.raises(NotFoundError) as customer_as_agent:
            await service.assign(agent_user, ticket.id, customer_user.id)

        assert missing_ticket.value.details["resource"] == "Ticket"
        assert customer_as_agent.value.details["resource"] == "Agent"

    @pytest.mark.asyncio
    async def test_update_fields(self, service: TicketService, customer_user: User, agent_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        saved = await service.update_ticket(
            agent_user, ticket.id, TicketUpdate(priority=TicketPriority.URGENT, department_id=1)
        )

        assert saved.priority == TicketPriority.URGENT
        assert saved.department_id == 1
        assert saved.subject == ticket.subject

    @pytest.mark.asyncio
    async def test_rate_only_by_owner(
        self, service: TicketService, customer_user: User, agent_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        with pytest.raises(AccessDeniedError):
            await service.rate(agent_user, ticket.id, 5)

        rated = await service.rate(customer_user, ticket.id, 4, "bom")
        assert rated.customer_rating == 4

    @pytest.mark.asyncio
    async def test_out_of_range_rating_writes_nothing(
        self, service: TicketService, customer_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        result = await service.rate(customer_user, ticket.id, 9, "x")

        assert result.customer_rating is None
        assert result.version == ticket.version

    @pytest.mark.asyncio
    async def test_soft_delete(self, service: TicketService, customer_user: User, admin_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        await service.delete_ticket(admin_user, ticket.id)

        with pytest.raises(NotFoundError):
            await service.get_ticket(admin_user, ticket.id)
        _, total = await service.list_tickets(admin_user)
        assert total == 0


class TestMessages:
    @pytest.mark.asyncio
    async def test_customer_cannot_post_internal_note(self, service: TicketService, customer_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        with pytest.raises(AccessDeniedError):
            await service.post_message(customer_user, ticket.id, "nota", is_internal=True)

    @pytest.mark.asyncio
    async def test_first_public_staff_reply_stamps_response(
        self, service: TicketService, customer_user: User, agent_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())

        await service.post_message(agent_user, ticket.id, "verificar AD", is_internal=True)
        assert (await service.get_ticket(agent_user, ticket.id)).first_response_at is None

        reply = await service.post_message(agent_user, ticket.id, "Pode tentar novamente?")
        await service.post_message(agent_user, ticket.id, "Alguma novidade?")

        stored = await service.get_ticket(agent_user, ticket.id)
        assert reply.message_type == MessageType.AGENT_MESSAGE
        assert stored.first_response_at == reply.created_at

    @pytest.mark.asyncio
    async def test_internal_notes_hidden_from_customer(
        self, service: TicketService, customer_user: User, agent_user: User
    ) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())
        await service.post_message(customer_user, ticket.id, "Ainda sem acesso")
        await service.post_message(agent_user, ticket.id, "verificar AD", is_internal=True)

        customer_view = await service.list_messages(customer_user, ticket.id)
        staff_view = await service.list_messages(agent_user, ticket.id)

        assert [m.content for m in customer_view] == ["Ainda sem acesso"]
        assert len(staff_view) == 2
        assert staff_view[1].message_type == MessageType.INTERNAL_NOTE

    @pytest.mark.asyncio
    async def test_only_author_edits(self, service: TicketService, customer_user: User, agent_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())
        message = await service.post_message(customer_user, ticket.id, "Primeira versão")

        with pytest.raises(AccessDeniedError):
            await service.edit_message(agent_user, ticket.id, message.id, "alterado")

        edited = await service.edit_message(customer_user, ticket.id, message.id, "Segunda versão")
        assert edited.content == "Segunda versão"
        assert edited.original_content == "Primeira versão"

    @pytest.mark.asyncio
    async def test_detail_view(self, service: TicketService, customer_user: User, agent_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket())
        await service.post_message(agent_user, ticket.id, "Olá Ana")

        detail = await service.detail(customer_user, await service.get_ticket(customer_user, ticket.id))

        assert detail.department == "T.I"
        assert detail.customer == "Ana Souza"
        assert detail.message_count == 1
        assert detail.messages[0].author_name == "Bruno Lima"

    @pytest.mark.asyncio
    async def test_summary_exposes_sla_deadline(self, service: TicketService, customer_user: User) -> None:
        ticket = await service.create_ticket(customer_user, new_ticket(priority=TicketPriority.URGENT))

        [summary] = await service.summaries([ticket])

        assert summary.sla_hours == 4
        assert summary.sla_deadline == ticket.created_at + timedelta(hours=4)
        assert summary.is_overdue is False
