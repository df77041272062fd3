"""
SQLAlchemy repositories.

One ``AsyncSession`` per request. Ticket updates are written with an
explicit ``UPDATE ... WHERE id = :id AND version = :version`` so two
requests that loaded the same version cannot both win.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.helpdesk.domain import (
    PENDING_STATUSES,
    RESOLVED_STATUSES,
    AdminProfile,
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
    utc_now,
)
from services.helpdesk.errors import (
    ConcurrencyConflictError,
    DuplicateEmailError,
    DuplicateTicketNumberError,
    NotFoundError,
)
from services.helpdesk.models import DepartmentModel, MessageModel, TicketModel, UserModel
from services.helpdesk.repositories.base import Repositories, TicketQuery, UserQuery
from shared.logging import get_logger


logger = get_logger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


# Mapping


def _ticket_from_row(row: TicketModel) -> Ticket:
    return Ticket(
        id=row.id,
        number=row.number,
        subject=row.subject,
        description=row.description,
        status=TicketStatus(row.status),
        priority=TicketPriority(row.priority),
        customer_id=row.customer_id,
        assigned_agent_id=row.assigned_agent_id,
        department_id=row.department_id,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        first_response_at=_aware(row.first_response_at),
        resolved_at=_aware(row.resolved_at),
        closed_at=_aware(row.closed_at),
        sla_hours=row.sla_hours,
        customer_rating=row.customer_rating,
        customer_feedback=row.customer_feedback,
        is_deleted=row.is_deleted,
        version=row.version,
    )


def _ticket_values(ticket: Ticket) -> dict[str, Any]:
    return {
        "number": ticket.number,
        "subject": ticket.subject,
        "description": ticket.description,
        "status": ticket.status.value,
        "priority": ticket.priority.value,
        "customer_id": ticket.customer_id,
        "assigned_agent_id": ticket.assigned_agent_id,
        "department_id": ticket.department_id,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
        "first_response_at": ticket.first_response_at,
        "resolved_at": ticket.resolved_at,
        "closed_at": ticket.closed_at,
        "sla_hours": ticket.sla_hours,
        "customer_rating": ticket.customer_rating,
        "customer_feedback": ticket.customer_feedback,
        "is_deleted": ticket.is_deleted,
    }


def _message_from_row(row: MessageModel) -> Message:
    return Message(
        id=row.id,
        ticket_id=row.ticket_id,
        author_id=row.author_id,
        content=row.content,
        message_type=MessageType(row.message_type),
        is_internal=row.is_internal,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        edited_at=_aware(row.edited_at),
        original_content=row.original_content,
        is_deleted=row.is_deleted,
    )


def _department_from_row(row: DepartmentModel) -> Department:
    return Department(
        id=row.id,
        name=row.name,
        description=row.description,
        is_active=row.is_active,
        color=row.color,
        is_deleted=row.is_deleted,
        created_at=_aware(row.created_at),
    )


def _user_from_row(row: UserModel) -> UserAccount:
    role = UserRole(row.role)
    if role == UserRole.ADMIN:
        profile: CustomerProfile | AgentProfile | AdminProfile = AdminProfile(
            can_manage_users=bool(row.can_manage_users),
            can_manage_system=bool(row.can_manage_system),
            can_view_reports=bool(row.can_view_reports),
            can_manage_departments=bool(row.can_manage_departments),
        )
    elif role == UserRole.AGENT:
        profile = AgentProfile(
            specialization=row.specialization,
            level=row.agent_level or 1,
            is_available=bool(row.is_available),
        )
    else:
        profile = CustomerProfile(
            company_department=row.company_department,
            total_tickets=row.total_tickets or 0,
            last_ticket_at=_aware(row.last_ticket_at),
        )

    return UserAccount(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        password_hash=row.password_hash,
        profile=profile,
        is_active=row.is_active,
        is_deleted=row.is_deleted,
        last_login_at=_aware(row.last_login_at),
        created_at=_aware(row.created_at),
    )


def _user_values(user: UserAccount) -> dict[str, Any]:
    values: dict[str, Any] = {
        "role": user.role.value,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email.lower(),
        "password_hash": user.password_hash,
        "is_active": user.is_active,
        "is_deleted": user.is_deleted,
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
    }
    profile = user.profile
    if isinstance(profile, CustomerProfile):
        values.update(
            company_department=profile.company_department,
            total_tickets=profile.total_tickets,
            last_ticket_at=profile.last_ticket_at,
        )
    elif isinstance(profile, AgentProfile):
        values.update(
            specialization=profile.specialization,
            agent_level=profile.level,
            is_available=profile.is_available,
        )
    elif isinstance(profile, AdminProfile):
        values.update(
            can_manage_users=profile.can_manage_users,
            can_manage_system=profile.can_manage_system,
            can_view_reports=profile.can_view_reports,
            can_manage_departments=profile.can_manage_departments,
        )
    return values


# Repositories


class SqlTicketRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, ticket: Ticket) -> Ticket:
        row = TicketModel(**_ticket_values(ticket), version=1)
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            logger.warning("ticket_number_collision", number=ticket.number, error=str(e.orig))
            raise DuplicateTicketNumberError(ticket.number) from e
        return _ticket_from_row(row)

    async def get(self, ticket_id: int) -> Ticket | None:
        row = await self._session.scalar(
            select(TicketModel).where(TicketModel.id == ticket_id, TicketModel.is_deleted.is_(False))
            # Bypass the identity map so retries see rows written by other sessions
            .execution_options(populate_existing=True)
        )
        return _ticket_from_row(row) if row is not None else None

    async def get_by_number(self, number: str) -> Ticket | None:
        row = await self._session.scalar(
            select(TicketModel).where(TicketModel.number == number, TicketModel.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        return _ticket_from_row(row) if row is not None else None

    def _filtered(self, query: TicketQuery):
        stmt = select(TicketModel).where(TicketModel.is_deleted.is_(False)).execution_options(
            populate_existing=True
        )
        if query.status is not None:
            stmt = stmt.where(TicketModel.status == query.status.value)
        if query.priority is not None:
            stmt = stmt.where(TicketModel.priority == query.priority.value)
        if query.customer_id is not None:
            stmt = stmt.where(TicketModel.customer_id == query.customer_id)

        needle = (query.search or "").strip()
        if needle:
            pattern = f"%{needle}%"
            requester = UserModel.first_name + " " + UserModel.last_name
            stmt = stmt.outerjoin(UserModel, UserModel.id == TicketModel.customer_id).where(
                or_(
                    TicketModel.subject.ilike(pattern),
                    TicketModel.description.ilike(pattern),
                    TicketModel.number.ilike(pattern),
                    requester.ilike(pattern),
                    UserModel.email.ilike(pattern),
                )
            )
        if query.overdue is not None:
            # The deadline check itself happens in Python; SQL only narrows candidates
            unresolved = TicketModel.status.not_in([s.value for s in RESOLVED_STATUSES])
            if query.overdue:
                stmt = stmt.where(TicketModel.sla_hours.is_not(None), unresolved)
        return stmt.order_by(TicketModel.created_at.desc(), TicketModel.id.desc())

    async def list(self, query: TicketQuery) -> tuple[list[Ticket], int]:
        stmt = self._filtered(query)

        if query.overdue is not None:
            now = query.now or utc_now()
            rows = (await self._session.scalars(stmt)).all()
            tickets = [
                t for t in (_ticket_from_row(r) for r in rows)
                if t.is_overdue(now) == query.overdue
            ]
            return tickets[query.offset : query.offset + query.limit], len(tickets)

        total = await self._session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
        rows = (await self._session.scalars(stmt.offset(query.offset).limit(query.limit))).all()
        return [_ticket_from_row(r) for r in rows], int(total or 0)

    async def update(self, ticket: Ticket) -> Ticket:
        result = await self._session.execute(
            update(TicketModel)
            .where(TicketModel.id == ticket.id, TicketModel.version == ticket.version)
            .values(**_ticket_values(ticket), version=ticket.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            exists = await self._session.scalar(select(TicketModel.id).where(TicketModel.id == ticket.id))
            if exists is None:
                raise NotFoundError("Ticket", ticket.id)
            raise ConcurrencyConflictError(
                f"Ticket {ticket.id} was modified concurrently",
                details={"expected_version": ticket.version},
            )

        return replace(ticket, version=ticket.version + 1)

    async def list_created_since(self, since: datetime) -> list[Ticket]:
        rows = (
            await self._session.scalars(
                select(TicketModel).where(
                    TicketModel.is_deleted.is_(False),
                    TicketModel.created_at >= since,
                )
            )
        ).all()
        return [_ticket_from_row(r) for r in rows]

    async def count_active_by_department(self) -> dict[int, int]:
        result = await self._session.execute(
            select(TicketModel.department_id, func.count())
            .where(
                TicketModel.is_deleted.is_(False),
                TicketModel.status.in_([s.value for s in PENDING_STATUSES]),
            )
            .group_by(TicketModel.department_id)
        )
        return {department_id: count for department_id, count in result.all()}


class SqlMessageRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, message: Message) -> Message:
        row = MessageModel(
            ticket_id=message.ticket_id,
            author_id=message.author_id,
            content=message.content,
            message_type=int(message.message_type),
            is_internal=message.is_internal,
            created_at=message.created_at,
            updated_at=message.updated_at,
            edited_at=message.edited_at,
            original_content=message.original_content,
            is_deleted=message.is_deleted,
        )
        self._session.add(row)
        await self._session.flush()
        return _message_from_row(row)

    async def get(self, message_id: int) -> Message | None:
        row = await self._session.scalar(
            select(MessageModel).where(MessageModel.id == message_id, MessageModel.is_deleted.is_(False))
        )
        return _message_from_row(row) if row is not None else None

    async def list_for_ticket(self, ticket_id: int) -> list[Message]:
        rows = (
            await self._session.scalars(
                select(MessageModel)
                .where(MessageModel.ticket_id == ticket_id, MessageModel.is_deleted.is_(False))
                .order_by(MessageModel.created_at, MessageModel.id)
            )
        ).all()
        return [_message_from_row(r) for r in rows]

    async def update(self, message: Message) -> Message:
        row = await self._session.get(MessageModel, message.id)
        if row is None:
            raise NotFoundError("Message", message.id)
        row.content = message.content
        row.updated_at = message.updated_at
        row.edited_at = message.edited_at
        row.original_content = message.original_content
        row.is_deleted = message.is_deleted
        await self._session.flush()
        return _message_from_row(row)

    async def count_by_ticket(self, ticket_ids: list[int]) -> dict[int, int]:
        counts = {ticket_id: 0 for ticket_id in ticket_ids}
        if not ticket_ids:
            return counts
        result = await self._session.execute(
            select(MessageModel.ticket_id, func.count())
            .where(MessageModel.ticket_id.in_(ticket_ids), MessageModel.is_deleted.is_(False))
            .group_by(MessageModel.ticket_id)
        )
        counts.update({ticket_id: count for ticket_id, count in result.all()})
        return counts


class SqlDepartmentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, department: Department) -> Department:
        row = DepartmentModel(
            name=department.name,
            description=department.description,
            is_active=department.is_active,
            color=department.color,
            is_deleted=department.is_deleted,
            created_at=department.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _department_from_row(row)

    async def get(self, department_id: int) -> Department | None:
        row = await self._session.scalar(
            select(DepartmentModel).where(
                DepartmentModel.id == department_id, DepartmentModel.is_deleted.is_(False)
            )
        )
        return _department_from_row(row) if row is not None else None

    async def list_active(self) -> list[Department]:
        rows = (
            await self._session.scalars(
                select(DepartmentModel)
                .where(DepartmentModel.is_deleted.is_(False), DepartmentModel.is_active.is_(True))
                .order_by(DepartmentModel.name)
            )
        ).all()
        return [_department_from_row(r) for r in rows]

    async def list_all(self) -> list[Department]:
        rows = (
            await self._session.scalars(
                select(DepartmentModel)
                .where(DepartmentModel.is_deleted.is_(False))
                .order_by(DepartmentModel.id)
            )
        ).all()
        return [_department_from_row(r) for r in rows]


class SqlUserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, user: UserAccount) -> UserAccount:
        row = UserModel(**_user_values(user))
        self._session.add(row)
        await self._flush_user(user)
        return _user_from_row(row)

    async def get(self, user_id: int) -> UserAccount | None:
        row = await self._session.scalar(
            select(UserModel).where(UserModel.id == user_id, UserModel.is_deleted.is_(False))
        )
        return _user_from_row(row) if row is not None else None

    async def get_by_email(self, email: str) -> UserAccount | None:
        row = await self._session.scalar(
            select(UserModel).where(
                UserModel.email == email.strip().lower(), UserModel.is_deleted.is_(False)
            )
        )
        return _user_from_row(row) if row is not None else None

    async def get_many(self, user_ids: list[int]) -> dict[int, UserAccount]:
        if not user_ids:
            return {}
        rows = (
            await self._session.scalars(
                select(UserModel).where(UserModel.id.in_(set(user_ids)), UserModel.is_deleted.is_(False))
            )
        ).all()
        return {row.id: _user_from_row(row) for row in rows}

    async def update(self, user: UserAccount) -> UserAccount:
        row = await self._session.get(UserModel, user.id)
        if row is None:
            raise NotFoundError("User", user.id)
        for key, value in _user_values(user).items():
            setattr(row, key, value)
        await self._flush_user(user)
        return _user_from_row(row)

    async def list(self, query: UserQuery) -> tuple[list[UserAccount], int]:
        stmt = select(UserModel).where(UserModel.is_deleted.is_(False))
        if query.role is not None:
            stmt = stmt.where(UserModel.role == query.role.value)
        needle = (query.search or "").strip()
        if needle:
            pattern = f"%{needle}%"
            full_name = UserModel.first_name + " " + UserModel.last_name
            stmt = stmt.where(or_(UserModel.email.ilike(pattern), full_name.ilike(pattern)))

        total = await self._session.scalar(select(func.count()).select_from(stmt.subquery()))
        rows = (
            await self._session.scalars(
                stmt.order_by(UserModel.id).offset(query.offset).limit(query.limit)
            )
        ).all()
        return [_user_from_row(r) for r in rows], total or 0

    async def has_admin(self) -> bool:
        found = await self._session.scalar(
            select(UserModel.id).where(
                UserModel.role == UserRole.ADMIN.value, UserModel.is_deleted.is_(False)
            ).limit(1)
        )
        return found is not None

    async def count_active_admins(self) -> int:
        total = await self._session.scalar(
            select(func.count(UserModel.id)).where(
                UserModel.role == UserRole.ADMIN.value,
                UserModel.is_active.is_(True),
                UserModel.is_deleted.is_(False),
            )
        )
        return total or 0

    async def _flush_user(self, user: UserAccount) -> None:
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            logger.warning("user_email_collision", email=user.email, error=str(e.orig))
            raise DuplicateEmailError(user.email.lower()) from e


def sql_repositories(session: AsyncSession) -> Repositories:
    """Bundle the SQL repositories around one session."""
    return Repositories(
        tickets=SqlTicketRepository(session),
        messages=SqlMessageRepository(session),
        departments=SqlDepartmentRepository(session),
        users=SqlUserRepository(session),
    )
