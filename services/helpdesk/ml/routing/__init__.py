"""Department routing heuristics."""

from services.helpdesk.ml.routing.classifier import (
    DepartmentSelection,
    guess_department,
    normalize_department_name,
    strip_accents,
)

__all__ = [
    "DepartmentSelection",
    "guess_department",
    "normalize_department_name",
    "strip_accents",
]
