"""Helpdesk ORM models."""

from services.helpdesk.models.directory import DepartmentModel, UserModel
from services.helpdesk.models.ticket import MessageModel, TicketModel

__all__ = [
    "DepartmentModel",
    "MessageModel",
    "TicketModel",
    "UserModel",
]
