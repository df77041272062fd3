"""Advisory result shared by the external and heuristic paths."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


SOURCE_GEMINI = "gemini"
SOURCE_HEURISTIC = "heuristic"

MAX_SUGGESTIONS = 5
MAX_FOLLOW_UP_QUESTIONS = 5


@dataclass
class AdvisoryResult:
    """Triage advice for a ticket text."""

    source: str
    suggestions: list[str] = field(default_factory=list)
    predicted_department_id: int | None = None
    predicted_department_name: str | None = None
    confidence: float | None = None
    priority_hint: str | None = None
    rationale: str | None = None
    next_action: str | None = None
    follow_up_questions: list[str] = field(default_factory=list)

    @property
    def is_useful(self) -> bool:
        """An answer counts only if it has suggestions or a department."""
        return bool(self.suggestions) or self.predicted_department_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestions": list(self.suggestions),
            "predicted_department_id": self.predicted_department_id,
            "predicted_department_name": self.predicted_department_name,
            "confidence": self.confidence,
            "priority_hint": self.priority_hint,
            "rationale": self.rationale,
            "source": self.source,
            "next_action": self.next_action,
            "follow_up_questions": list(self.follow_up_questions),
        }
