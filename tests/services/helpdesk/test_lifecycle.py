"""Tests for the ticket entity and its status state machine."""

import re
from datetime import UTC, datetime, timedelta

import pytest

from services.helpdesk.domain import (
    ALLOWED_TRANSITIONS,
    AgentProfile,
    CustomerProfile,
    Message,
    Ticket,
    TicketStatus,
    UserAccount,
    UserRole,
    can_access_ticket,
    can_transition,
    can_view_message,
    generate_ticket_number,
)


CREATED = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


def make_ticket(status: TicketStatus = TicketStatus.OPEN, **kwargs) -> Ticket:
    return Ticket(
        subject="Impressora não imprime",
        description="Fila travada desde ontem",
        customer_id=5,
        department_id=4,
        status=status,
        created_at=CREATED,
        **kwargs,
    )


def all_pairs() -> list[tuple[TicketStatus, TicketStatus]]:
    return [(a, b) for a in TicketStatus for b in TicketStatus]


class TestTransitions:
    @pytest.mark.parametrize("current,target", all_pairs())
    def test_table_is_respected(self, current: TicketStatus, target: TicketStatus) -> None:
        ticket = make_ticket(current)
        now = CREATED + timedelta(hours=1)

        allowed = target == TicketStatus.CANCELLED or target in ALLOWED_TRANSITIONS[current]
        changed = ticket.change_status(target, now)

        assert changed is allowed
        if allowed:
            assert ticket.status == target
            assert ticket.updated_at == now
        else:
            assert ticket.status == current
            assert ticket.updated_at is None

    @pytest.mark.parametrize("current", list(TicketStatus))
    def test_cancel_always_allowed(self, current: TicketStatus) -> None:
        assert can_transition(current, TicketStatus.CANCELLED)
        ticket = make_ticket(current)
        assert ticket.change_status(TicketStatus.CANCELLED) is True
        assert ticket.status == TicketStatus.CANCELLED

    def test_close_keeps_original_resolution_time(self) -> None:
        ticket = make_ticket(TicketStatus.IN_PROGRESS)
        resolved = CREATED + timedelta(hours=2)
        closed = CREATED + timedelta(hours=5)

        assert ticket.change_status(TicketStatus.RESOLVED, resolved)
        assert ticket.change_status(TicketStatus.CLOSED, closed)

        assert ticket.resolved_at == resolved
        assert ticket.closed_at == closed

    def test_close_backfills_resolution_time(self) -> None:
        # Loaded in Resolved without a resolution stamp
        ticket = make_ticket(TicketStatus.RESOLVED)
        closed = CREATED + timedelta(hours=3)

        assert ticket.change_status(TicketStatus.CLOSED, closed)

        assert ticket.resolved_at == closed
        assert ticket.closed_at == closed

    def test_repeated_resolution_restamps(self) -> None:
        ticket = make_ticket(TicketStatus.IN_PROGRESS)
        first = CREATED + timedelta(hours=1)
        second = CREATED + timedelta(hours=4)

        ticket.change_status(TicketStatus.RESOLVED, first)
        ticket.change_status(TicketStatus.IN_PROGRESS, first)
        ticket.change_status(TicketStatus.RESOLVED, second)

        assert ticket.resolved_at == second


class TestAssignment:
    def test_open_ticket_moves_to_in_progress(self) -> None:
        ticket = make_ticket()

        ticket.assign_to_agent(2)

        assert ticket.assigned_agent_id == 2
        assert ticket.status == TicketStatus.IN_PROGRESS

    @pytest.mark.parametrize(
        "status",
        [TicketStatus.IN_PROGRESS, TicketStatus.WAITING_CUSTOMER, TicketStatus.RESOLVED, TicketStatus.CLOSED],
    )
    def test_other_statuses_only_change_agent(self, status: TicketStatus) -> None:
        ticket = make_ticket(status)

        ticket.assign_to_agent(3)

        assert ticket.assigned_agent_id == 3
        assert ticket.status == status

    def test_first_response_is_stamped_once(self) -> None:
        ticket = make_ticket()
        first = CREATED + timedelta(minutes=30)

        assert ticket.set_first_response(first) is True
        assert ticket.set_first_response(first + timedelta(hours=1)) is False
        assert ticket.first_response_at == first
        assert ticket.first_response_time_hours == pytest.approx(0.5)


class TestRating:
    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_out_of_range_is_ignored(self, rating: int) -> None:
        ticket = make_ticket(TicketStatus.RESOLVED)

        assert ticket.rate(rating, "x") is False

        assert ticket.customer_rating is None
        assert ticket.customer_feedback is None
        assert ticket.updated_at is None

    def test_valid_rating_sets_both_fields(self) -> None:
        ticket = make_ticket(TicketStatus.RESOLVED)

        assert ticket.rate(5, "ótimo") is True

        assert ticket.customer_rating == 5
        assert ticket.customer_feedback == "ótimo"
        assert ticket.updated_at is not None


class TestOverdue:
    def test_without_sla_never_overdue(self) -> None:
        ticket = make_ticket()
        assert ticket.is_overdue(CREATED + timedelta(days=30)) is False
        assert ticket.sla_deadline is None

    def test_overdue_after_deadline(self) -> None:
        ticket = make_ticket(sla_hours=4)

        assert ticket.is_overdue(CREATED + timedelta(hours=4)) is False
        assert ticket.is_overdue(CREATED + timedelta(hours=4, seconds=1)) is True

    @pytest.mark.parametrize("status", [TicketStatus.RESOLVED, TicketStatus.CLOSED])
    def test_resolution_clears_overdue(self, status: TicketStatus) -> None:
        ticket = make_ticket(TicketStatus.IN_PROGRESS, sla_hours=4)
        later = CREATED + timedelta(hours=10)
        assert ticket.is_overdue(later) is True

        ticket.change_status(TicketStatus.RESOLVED, later)
        if status == TicketStatus.CLOSED:
            ticket.change_status(TicketStatus.CLOSED, later)

        assert ticket.is_overdue(later) is False


class TestTicketNumber:
    def test_format(self) -> None:
        number = generate_ticket_number(datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=UTC))

        assert number == "TCK-250102030405678"
        assert re.fullmatch(r"TCK-\d{15}", number)

    def test_converts_to_utc(self) -> None:
        from datetime import timezone

        local = datetime(2025, 1, 2, 0, 0, 0, tzinfo=timezone(timedelta(hours=-3)))

        assert generate_ticket_number(local) == "TCK-250102030000000"


class TestAccess:
    def test_customer_sees_only_own_tickets(self) -> None:
        ticket = make_ticket()

        assert can_access_ticket(UserRole.CUSTOMER, 5, ticket) is True
        assert can_access_ticket(UserRole.CUSTOMER, 4, ticket) is False
        assert can_access_ticket(UserRole.AGENT, 2, ticket) is True
        assert can_access_ticket(UserRole.ADMIN, 1, ticket) is True

    def test_internal_notes_are_staff_only(self) -> None:
        ticket = make_ticket()
        note = Message(ticket_id=1, author_id=2, content="verificar AD", is_internal=True)

        assert can_view_message(UserRole.CUSTOMER, 5, note, ticket) is False
        assert can_view_message(UserRole.AGENT, 2, note, ticket) is True

    def test_role_follows_profile(self) -> None:
        agent = UserAccount("Bruno", "Lima", "bruno@x", "hash", profile=AgentProfile())
        customer = UserAccount("Ana", "Souza", "ana@x", "hash", profile=CustomerProfile())

        assert agent.role == UserRole.AGENT and agent.is_staff
        assert customer.role == UserRole.CUSTOMER and not customer.is_staff

    def test_customer_counter(self) -> None:
        customer = UserAccount("Ana", "Souza", "ana@x", "hash")

        customer.record_ticket_opened(CREATED)

        assert customer.profile.total_tickets == 1
        assert customer.profile.last_ticket_at == CREATED


class TestMessage:
    def test_edit_keeps_original(self) -> None:
        message = Message(ticket_id=1, author_id=5, content="primeira versão")

        message.edit("segunda versão", CREATED)
        message.edit("terceira versão", CREATED + timedelta(minutes=1))

        assert message.content == "terceira versão"
        assert message.original_content == "primeira versão"
        assert message.is_edited is True
