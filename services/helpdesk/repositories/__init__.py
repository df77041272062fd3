"""Persistence for tickets, messages, departments and users."""

from services.helpdesk.repositories.base import (
    DepartmentRepository,
    MessageRepository,
    Repositories,
    TicketQuery,
    TicketRepository,
    UserQuery,
    UserRepository,
)
from services.helpdesk.repositories.memory import InMemoryStore
from services.helpdesk.repositories.seed import seed_demo_data
from services.helpdesk.repositories.sql import sql_repositories

__all__ = [
    "DepartmentRepository",
    "InMemoryStore",
    "MessageRepository",
    "Repositories",
    "TicketQuery",
    "TicketRepository",
    "UserQuery",
    "UserRepository",
    "seed_demo_data",
    "sql_repositories",
]
