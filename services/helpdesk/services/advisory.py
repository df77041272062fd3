"""
Advisory Service
================

Triage advice for a ticket text. The external classifier is tried first
when one is configured; any failure, timeout or empty answer falls back to
the deterministic heuristic. Cancellation is not intercepted and aborts the
call without a fallback.

Version: 0.1.0
"""

import asyncio
from typing import Sequence

from services.helpdesk.domain import Department
from services.helpdesk.ml.advisory import (
    AdvisoryResult,
    build_triage_prompt,
    heuristic_analysis,
    parse_model_answer,
)
from services.helpdesk.repositories import DepartmentRepository
from shared.config import settings
from shared.llm import LLMProvider
from shared.logging import get_logger


logger = get_logger(__name__)


class AdvisoryService:
    """Produces triage suggestions, a department guess and a priority hint."""

    def __init__(
        self,
        departments: DepartmentRepository,
        provider: LLMProvider | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._departments = departments
        self._provider = provider
        self._timeout = timeout_seconds or settings.llm.timeout_seconds

    async def analyze(
        self,
        title: str,
        description: str,
        done_actions: Sequence[str] | None = None,
        rejected_actions: Sequence[str] | None = None,
        prior_suggestions: Sequence[str] | None = None,
    ) -> AdvisoryResult:
        departments = await self._departments.list_active()

        if self._provider is not None:
            result = await self._ask_provider(
                self._provider,
                title,
                description,
                departments,
                done_actions,
                rejected_actions,
                prior_suggestions,
            )
            if result is not None:
                return result

        result = heuristic_analysis(
            title,
            description,
            departments,
            done_actions=done_actions,
            rejected_actions=rejected_actions,
            prior_suggestions=prior_suggestions,
        )
        logger.info(
            "advisory_heuristic_used",
            department=result.predicted_department_name,
            confidence=result.confidence,
        )
        return result

    async def _ask_provider(
        self,
        provider: LLMProvider,
        title: str,
        description: str,
        departments: list[Department],
        done_actions: Sequence[str] | None,
        rejected_actions: Sequence[str] | None,
        prior_suggestions: Sequence[str] | None,
    ) -> AdvisoryResult | None:
        prompt = build_triage_prompt(
            title,
            description,
            departments,
            done_actions=done_actions,
            rejected_actions=rejected_actions,
            prior_suggestions=prior_suggestions,
        )

        try:
            data = await asyncio.wait_for(
                provider.generate_json(prompt, temperature=settings.llm.temperature),
                timeout=self._timeout,
            )
        except Exception as e:
            # CancelledError is a BaseException and passes through untouched
            logger.warning(
                "advisory_external_failed",
                provider=provider.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        result = parse_model_answer(data, departments)
        if not result.is_useful:
            logger.info("advisory_external_empty", provider=provider.name)
            return None

        logger.info(
            "advisory_external_used",
            provider=provider.name,
            model=provider.model,
            department=result.predicted_department_name,
            confidence=result.confidence,
        )
        return result
