"""
Report Service
==============

Ticket statistics over a rolling window anchored at "now".

Periods:
- semanal: last 7 days
- trimestral: last 90 days
- mensal (and anything unrecognised): last 30 days

Windows are never calendar aligned, so a report run early in the month
still covers a full period.

Version: 0.1.0
"""

from collections import Counter
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from services.helpdesk.domain import (
    PENDING_STATUSES,
    RESOLVED_STATUSES,
    Department,
    Ticket,
    TicketPriority,
    utc_now,
)
from services.helpdesk.repositories import Repositories
from services.helpdesk.schemas import DepartmentBreakdown, ReportSummary
from shared.logging import get_logger


logger = get_logger(__name__)

DEFAULT_PERIOD = "mensal"

PERIOD_DAYS: dict[str, int] = {
    "semanal": 7,
    "mensal": 30,
    "trimestral": 90,
}

UNKNOWN_DEPARTMENT = "Sem departamento"


def resolve_period(period: str | None) -> tuple[str, int]:
    """Normalise the period key and return it with its window length in days."""
    key = (period or DEFAULT_PERIOD).strip().lower()
    if key not in PERIOD_DAYS:
        return key, PERIOD_DAYS[DEFAULT_PERIOD]
    return key, PERIOD_DAYS[key]


def average_resolution_hours(tickets: Sequence[Ticket]) -> float | None:
    """
    Mean time to resolution, in hours rounded to one decimal.

    Each ticket contributes whole elapsed minutes (truncated), matching how
    the figure has always been reported.
    """
    minutes = [
        int((t.resolved_at - t.created_at).total_seconds() // 60)
        for t in tickets
        if t.status in RESOLVED_STATUSES and t.resolved_at is not None
    ]
    if not minutes:
        return None
    return round(sum(minutes) / len(minutes) / 60, 1)


def summarize(
    tickets: Sequence[Ticket],
    departments: Sequence[Department],
    period: str | None = None,
    now: datetime | None = None,
) -> ReportSummary:
    """Aggregate the tickets created inside the period's window."""
    key, days = resolve_period(period)
    window_end = now or utc_now()
    window_start = window_end - timedelta(days=days)

    in_window = [
        t for t in tickets
        if not t.is_deleted and window_start <= t.created_at <= window_end
    ]

    names = {d.id: d.name for d in departments}

    by_department: Counter[str] = Counter()
    resolved_by_department: Counter[str] = Counter()
    pending_by_department: Counter[str] = Counter()
    by_priority: Counter[str] = Counter()

    resolved = pending = 0
    for ticket in in_window:
        name = names.get(ticket.department_id, UNKNOWN_DEPARTMENT)
        by_department[name] += 1
        by_priority[TicketPriority(ticket.priority).value] += 1

        if ticket.status in RESOLVED_STATUSES:
            resolved += 1
            resolved_by_department[name] += 1
        elif ticket.status in PENDING_STATUSES:
            pending += 1
            pending_by_department[name] += 1

    # most_common keeps first-seen order among equal counts
    distribution = dict(by_department.most_common())

    return ReportSummary(
        period=key,
        window_start=window_start,
        window_end=window_end,
        total_tickets=len(in_window),
        resolved=resolved,
        pending=pending,
        avg_resolution_hours=average_resolution_hours(in_window),
        department_distribution=distribution,
        priority_distribution=dict(by_priority),
        department_detailed=[
            DepartmentBreakdown(
                department=name,
                total=count,
                resolved=resolved_by_department[name],
                pending=pending_by_department[name],
            )
            for name, count in distribution.items()
        ],
    )


class ReportService:
    """Loads the window's tickets and summarises them."""

    def __init__(self, repos: Repositories, clock: Callable[[], datetime] = utc_now) -> None:
        self._repos = repos
        self._clock = clock

    async def summary(self, period: str | None = None) -> ReportSummary:
        now = self._clock()
        _, days = resolve_period(period)
        tickets = await self._repos.tickets.list_created_since(now - timedelta(days=days))
        departments = await self._repos.departments.list_all()

        report = summarize(tickets, departments, period=period, now=now)
        logger.info(
            "report_generated",
            period=report.period,
            total=report.total_tickets,
            resolved=report.resolved,
            pending=report.pending,
        )
        return report
