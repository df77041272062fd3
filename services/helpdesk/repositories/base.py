"""
Repository interfaces.

Every query excludes soft-deleted records. Ticket updates are optimistic:
the stored ``version`` must equal the loaded one or the write is refused.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from services.helpdesk.domain import (
    Department,
    Message,
    Ticket,
    TicketPriority,
    TicketStatus,
    UserAccount,
    UserRole,
)


@dataclass
class TicketQuery:
    """Filters for listing tickets."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    customer_id: int | None = None
    # Matches subject, description, number and requester name or email
    search: str | None = None
    overdue: bool | None = None
    now: datetime | None = None
    offset: int = 0
    limit: int = 50


class TicketRepository(Protocol):
    async def add(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket. Raises DuplicateTicketNumberError on a number clash."""
        ...

    async def get(self, ticket_id: int) -> Ticket | None: ...

    async def get_by_number(self, number: str) -> Ticket | None: ...

    async def list(self, query: TicketQuery) -> tuple[list[Ticket], int]:
        """Return one page of tickets, newest first, and the total match count."""
        ...

    async def update(self, ticket: Ticket) -> Ticket:
        """Write changes if the version is current. Raises ConcurrencyConflictError otherwise."""
        ...

    async def list_created_since(self, since: datetime) -> list[Ticket]: ...

    async def count_active_by_department(self) -> dict[int, int]: ...


class MessageRepository(Protocol):
    async def add(self, message: Message) -> Message: ...

    async def get(self, message_id: int) -> Message | None: ...

    async def list_for_ticket(self, ticket_id: int) -> list[Message]: ...

    async def update(self, message: Message) -> Message: ...

    async def count_by_ticket(self, ticket_ids: list[int]) -> dict[int, int]: ...


class DepartmentRepository(Protocol):
    async def add(self, department: Department) -> Department: ...

    async def get(self, department_id: int) -> Department | None: ...

    async def list_active(self) -> list[Department]:
        """Active departments ordered by name."""
        ...

    async def list_all(self) -> list[Department]: ...


@dataclass
class UserQuery:
    """Filters for listing accounts, ordered by id."""

    role: UserRole | None = None
    # Matches email or full name
    search: str | None = None
    offset: int = 0
    limit: int = 50


class UserRepository(Protocol):
    async def add(self, user: UserAccount) -> UserAccount:
        """Persist a new account. Raises DuplicateEmailError when the email is taken."""
        ...

    async def get(self, user_id: int) -> UserAccount | None: ...

    async def get_by_email(self, email: str) -> UserAccount | None: ...

    async def get_many(self, user_ids: list[int]) -> dict[int, UserAccount]: ...

    async def update(self, user: UserAccount) -> UserAccount:
        """Overwrite an account. Raises DuplicateEmailError when the new email is taken."""
        ...

    async def list(self, query: UserQuery) -> tuple[list[UserAccount], int]: ...

    async def has_admin(self) -> bool: ...

    async def count_active_admins(self) -> int: ...


@dataclass
class Repositories:
    """The repositories one request works with."""

    tickets: TicketRepository
    messages: MessageRepository
    departments: DepartmentRepository
    users: UserRepository
