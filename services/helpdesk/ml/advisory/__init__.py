"""Triage advice: external classifier prompt/parsing and the heuristic fallback."""

from services.helpdesk.ml.advisory.heuristic import heuristic_analysis
from services.helpdesk.ml.advisory.prompt import build_triage_prompt, parse_model_answer
from services.helpdesk.ml.advisory.result import (
    SOURCE_GEMINI,
    SOURCE_HEURISTIC,
    AdvisoryResult,
)

__all__ = [
    "AdvisoryResult",
    "SOURCE_GEMINI",
    "SOURCE_HEURISTIC",
    "build_triage_prompt",
    "heuristic_analysis",
    "parse_model_answer",
]
