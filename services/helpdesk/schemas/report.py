"""
Report Schemas
==============

Aggregated ticket statistics over a rolling window.

Version: 0.1.0
"""

from datetime import datetime

from pydantic import Field

from services.helpdesk.schemas.base import ApiModel


class DepartmentBreakdown(ApiModel):
    department: str
    total: int = 0
    resolved: int = 0
    pending: int = 0


class ReportSummary(ApiModel):
    period: str
    window_start: datetime
    window_end: datetime
    total_tickets: int = 0
    resolved: int = 0
    pending: int = 0
    avg_resolution_hours: float | None = None
    # Insertion order is count descending
    department_distribution: dict[str, int] = Field(default_factory=dict)
    priority_distribution: dict[str, int] = Field(default_factory=dict)
    department_detailed: list[DepartmentBreakdown] = Field(default_factory=list)
