"""Application services for the helpdesk API."""

from services.helpdesk.services.advisory import AdvisoryService
from services.helpdesk.services.auth import AccountService, profile_view
from services.helpdesk.services.reports import ReportService, summarize
from services.helpdesk.services.tickets import TicketService, actor_role, default_sla_hours
from services.helpdesk.services.users import UserService

__all__ = [
    "AccountService",
    "AdvisoryService",
    "ReportService",
    "TicketService",
    "UserService",
    "actor_role",
    "default_sla_hours",
    "profile_view",
    "summarize",
]
