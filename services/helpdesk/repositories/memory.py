"""
In-memory repositories.

Used for development and tests. Records are copied on the way in and out so
callers never share state with the store, which keeps the version check
meaningful.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from typing import TypeVar

from services.helpdesk.domain import (
    PENDING_STATUSES,
    AdminProfile,
    Department,
    Message,
    Ticket,
    UserAccount,
    utc_now,
)
from services.helpdesk.errors import (
    ConcurrencyConflictError,
    DuplicateEmailError,
    DuplicateTicketNumberError,
    NotFoundError,
)
from services.helpdesk.repositories.base import Repositories, TicketQuery, UserQuery

T = TypeVar("T")


def _clone(record: T) -> T:
    return copy.deepcopy(record)


class InMemoryStore:
    """Holds every record for the in-memory repositories."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.tickets: dict[int, Ticket] = {}
        self.messages: dict[int, Message] = {}
        self.departments: dict[int, Department] = {}
        self.users: dict[int, UserAccount] = {}
        self._sequences: dict[str, int] = {}

    def next_id(self, kind: str) -> int:
        self._sequences[kind] = self._sequences.get(kind, 0) + 1
        return self._sequences[kind]

    def repositories(self) -> Repositories:
        return Repositories(
            tickets=InMemoryTicketRepository(self),
            messages=InMemoryMessageRepository(self),
            departments=InMemoryDepartmentRepository(self),
            users=InMemoryUserRepository(self),
        )


class InMemoryTicketRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, ticket: Ticket) -> Ticket:
        async with self._store.lock:
            if any(t.number == ticket.number for t in self._store.tickets.values()):
                raise DuplicateTicketNumberError(ticket.number)
            record = _clone(ticket)
            record.id = self._store.next_id("ticket")
            record.version = 1
            self._store.tickets[record.id] = record
            return _clone(record)

    async def get(self, ticket_id: int) -> Ticket | None:
        record = self._store.tickets.get(ticket_id)
        if record is None or record.is_deleted:
            return None
        return _clone(record)

    async def get_by_number(self, number: str) -> Ticket | None:
        for record in self._store.tickets.values():
            if record.number == number and not record.is_deleted:
                return _clone(record)
        return None

    def _matches_search(self, ticket: Ticket, needle: str) -> bool:
        haystack = [ticket.subject, ticket.description, ticket.number]
        requester = self._store.users.get(ticket.customer_id)
        if requester is not None:
            haystack += [requester.full_name, requester.email]
        return any(needle in value.lower() for value in haystack)

    async def list(self, query: TicketQuery) -> tuple[list[Ticket], int]:
        now = query.now or utc_now()
        needle = (query.search or "").strip().lower()

        matches = []
        for ticket in self._store.tickets.values():
            if ticket.is_deleted:
                continue
            if query.status is not None and ticket.status != query.status:
                continue
            if query.priority is not None and ticket.priority != query.priority:
                continue
            if query.customer_id is not None and ticket.customer_id != query.customer_id:
                continue
            if query.overdue is not None and ticket.is_overdue(now) != query.overdue:
                continue
            if needle and not self._matches_search(ticket, needle):
                continue
            matches.append(ticket)

        matches.sort(key=lambda t: (t.created_at, t.id or 0), reverse=True)
        page = matches[query.offset : query.offset + query.limit]
        return [_clone(t) for t in page], len(matches)

    async def update(self, ticket: Ticket) -> Ticket:
        if ticket.id is None:
            raise NotFoundError("Ticket", None)
        async with self._store.lock:
            stored = self._store.tickets.get(ticket.id)
            if stored is None:
                raise NotFoundError("Ticket", ticket.id)
            if stored.version != ticket.version:
                raise ConcurrencyConflictError(
                    f"Ticket {ticket.id} was modified concurrently",
                    details={"expected_version": ticket.version, "stored_version": stored.version},
                )
            record = _clone(ticket)
            record.version = stored.version + 1
            self._store.tickets[record.id] = record
            return _clone(record)

    async def list_created_since(self, since: datetime) -> list[Ticket]:
        return [
            _clone(t)
            for t in self._store.tickets.values()
            if not t.is_deleted and t.created_at >= since
        ]

    async def count_active_by_department(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for ticket in self._store.tickets.values():
            if not ticket.is_deleted and ticket.status in PENDING_STATUSES:
                counts[ticket.department_id] = counts.get(ticket.department_id, 0) + 1
        return counts


class InMemoryMessageRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, message: Message) -> Message:
        async with self._store.lock:
            record = _clone(message)
            record.id = self._store.next_id("message")
            self._store.messages[record.id] = record
            return _clone(record)

    async def get(self, message_id: int) -> Message | None:
        record = self._store.messages.get(message_id)
        if record is None or record.is_deleted:
            return None
        return _clone(record)

    async def list_for_ticket(self, ticket_id: int) -> list[Message]:
        records = [
            m for m in self._store.messages.values()
            if m.ticket_id == ticket_id and not m.is_deleted
        ]
        records.sort(key=lambda m: (m.created_at, m.id or 0))
        return [_clone(m) for m in records]

    async def update(self, message: Message) -> Message:
        if message.id is None or message.id not in self._store.messages:
            raise NotFoundError("Message", message.id)
        async with self._store.lock:
            self._store.messages[message.id] = _clone(message)
            return _clone(message)

    async def count_by_ticket(self, ticket_ids: list[int]) -> dict[int, int]:
        wanted = set(ticket_ids)
        counts = {ticket_id: 0 for ticket_id in wanted}
        for message in self._store.messages.values():
            if message.ticket_id in wanted and not message.is_deleted:
                counts[message.ticket_id] += 1
        return counts


class InMemoryDepartmentRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, department: Department) -> Department:
        async with self._store.lock:
            record = _clone(department)
            record.id = self._store.next_id("department")
            self._store.departments[record.id] = record
            return _clone(record)

    async def get(self, department_id: int) -> Department | None:
        record = self._store.departments.get(department_id)
        if record is None or record.is_deleted:
            return None
        return _clone(record)

    async def list_active(self) -> list[Department]:
        records = [d for d in self._store.departments.values() if d.is_selectable]
        return [_clone(d) for d in sorted(records, key=lambda d: d.name)]

    async def list_all(self) -> list[Department]:
        records = [d for d in self._store.departments.values() if not d.is_deleted]
        return [_clone(d) for d in sorted(records, key=lambda d: d.id or 0)]


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        # Deleted accounts keep their address, as under the SQL unique index
        return any(u.email == email and u.id != exclude_id for u in self._store.users.values())

    async def add(self, user: UserAccount) -> UserAccount:
        async with self._store.lock:
            record = _clone(user)
            record.email = record.email.lower()
            if self._email_taken(record.email):
                raise DuplicateEmailError(record.email)
            record.id = self._store.next_id("user")
            self._store.users[record.id] = record
            return _clone(record)

    async def get(self, user_id: int) -> UserAccount | None:
        record = self._store.users.get(user_id)
        if record is None or record.is_deleted:
            return None
        return _clone(record)

    async def get_by_email(self, email: str) -> UserAccount | None:
        wanted = email.strip().lower()
        for record in self._store.users.values():
            if record.email == wanted and not record.is_deleted:
                return _clone(record)
        return None

    async def get_many(self, user_ids: list[int]) -> dict[int, UserAccount]:
        return {
            user_id: _clone(self._store.users[user_id])
            for user_id in set(user_ids)
            if user_id in self._store.users and not self._store.users[user_id].is_deleted
        }

    async def update(self, user: UserAccount) -> UserAccount:
        if user.id is None or user.id not in self._store.users:
            raise NotFoundError("User", user.id)
        async with self._store.lock:
            record = _clone(user)
            record.email = record.email.lower()
            if self._email_taken(record.email, exclude_id=record.id):
                raise DuplicateEmailError(record.email)
            self._store.users[record.id] = record
            return _clone(record)

    async def list(self, query: UserQuery) -> tuple[list[UserAccount], int]:
        needle = (query.search or "").strip().lower()
        matches = [
            u
            for u in self._store.users.values()
            if not u.is_deleted
            and (query.role is None or u.role == query.role)
            and (not needle or needle in u.email or needle in u.full_name.lower())
        ]
        matches.sort(key=lambda u: u.id or 0)
        page = matches[query.offset : query.offset + query.limit]
        return [_clone(u) for u in page], len(matches)

    async def has_admin(self) -> bool:
        return any(
            isinstance(u.profile, AdminProfile) and not u.is_deleted
            for u in self._store.users.values()
        )

    async def count_active_admins(self) -> int:
        return sum(
            1
            for u in self._store.users.values()
            if isinstance(u.profile, AdminProfile) and u.is_active and not u.is_deleted
        )
