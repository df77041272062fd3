"""
Shared Models
=============

Pydantic response envelopes shared across the helpdesk API.
"""

from shared.models.common import (
    BaseResponse,
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
)

__all__ = [
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
    "PaginatedResponse",
]
