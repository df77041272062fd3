"""Request and response models for the helpdesk API."""

from services.helpdesk.schemas.advisory import AnalyzeRequest, AnalyzeResponse
from services.helpdesk.schemas.base import ApiModel
from services.helpdesk.schemas.directory import (
    AuthResponse,
    DepartmentOut,
    DepartmentSuggestion,
    DepartmentSuggestRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    UserCreate,
    UserOut,
    UserStatusChange,
    UserUpdate,
)
from services.helpdesk.schemas.report import DepartmentBreakdown, ReportSummary
from services.helpdesk.schemas.ticket import (
    AssignRequest,
    MessageCreate,
    MessageEdit,
    MessageOut,
    RateRequest,
    StatusChange,
    TicketCreate,
    TicketDetail,
    TicketSummary,
    TicketUpdate,
)

__all__ = [
    "AnalyzeRequest",
    "AnalyzeResponse",
    "ApiModel",
    "AssignRequest",
    "AuthResponse",
    "DepartmentBreakdown",
    "DepartmentOut",
    "DepartmentSuggestRequest",
    "DepartmentSuggestion",
    "LoginRequest",
    "MessageCreate",
    "MessageEdit",
    "MessageOut",
    "RateRequest",
    "RefreshRequest",
    "RegisterRequest",
    "ReportSummary",
    "StatusChange",
    "TicketCreate",
    "TicketDetail",
    "TicketSummary",
    "TicketUpdate",
    "UserCreate",
    "UserOut",
    "UserStatusChange",
    "UserUpdate",
]
