"""Helpdesk API routes."""

from services.helpdesk.routes.ai import router as ai_router
from services.helpdesk.routes.auth import router as auth_router
from services.helpdesk.routes.departments import router as departments_router
from services.helpdesk.routes.reports import router as reports_router
from services.helpdesk.routes.tickets import router as tickets_router
from services.helpdesk.routes.users import router as users_router

__all__ = [
    "ai_router",
    "auth_router",
    "departments_router",
    "reports_router",
    "tickets_router",
    "users_router",
]
