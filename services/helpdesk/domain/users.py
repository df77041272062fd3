"""
User accounts.

A single account record carries a role-specific profile. The role is derived
from the profile type and capability checks switch over it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from services.helpdesk.domain.enums import UserRole
from services.helpdesk.domain.message import Message
from services.helpdesk.domain.ticket import Ticket, utc_now


@dataclass
class CustomerProfile:
    company_department: str | None = None
    total_tickets: int = 0
    last_ticket_at: datetime | None = None


@dataclass
class AgentProfile:
    specialization: str | None = None
    level: int = 1
    is_available: bool = True


@dataclass
class AdminProfile:
    can_manage_users: bool = True
    can_manage_system: bool = True
    can_view_reports: bool = True
    can_manage_departments: bool = True


UserProfile = CustomerProfile | AgentProfile | AdminProfile


@dataclass
class UserAccount:
    """Shared account fields plus the role payload."""

    first_name: str
    last_name: str
    email: str
    password_hash: str
    profile: UserProfile = field(default_factory=CustomerProfile)
    id: int | None = None
    is_active: bool = True
    is_deleted: bool = False
    last_login_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def role(self) -> UserRole:
        if isinstance(self.profile, AdminProfile):
            return UserRole.ADMIN
        if isinstance(self.profile, AgentProfile):
            return UserRole.AGENT
        return UserRole.CUSTOMER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.AGENT, UserRole.ADMIN)

    def record_ticket_opened(self, now: datetime | None = None) -> None:
        """Bump the customer's ticket counters. No-op for staff accounts."""
        if isinstance(self.profile, CustomerProfile):
            self.profile.total_tickets += 1
            self.profile.last_ticket_at = now or utc_now()


def can_access_ticket(role: UserRole, user_id: int, ticket: Ticket) -> bool:
    """Customers see only their own tickets; staff see every ticket."""
    if role == UserRole.CUSTOMER:
        return ticket.customer_id == user_id
    if role in (UserRole.AGENT, UserRole.ADMIN):
        return True
    return False


def can_view_message(role: UserRole, user_id: int, message: Message, ticket: Ticket) -> bool:
    """Internal notes are staff-only; public messages follow ticket access."""
    if message.is_internal:
        return role in (UserRole.AGENT, UserRole.ADMIN)
    return can_access_ticket(role, user_id, ticket)
