"""Prompt construction and lenient parsing for the external classifier."""

from __future__ import annotations

import math
from typing import Any, Sequence

from services.helpdesk.domain.department import Department
from services.helpdesk.ml.advisory.result import (
    MAX_FOLLOW_UP_QUESTIONS,
    MAX_SUGGESTIONS,
    SOURCE_GEMINI,
    AdvisoryResult,
)


def _unique(items: Sequence[str] | None) -> list[str]:
    result: list[str] = []
    for item in items or []:
        if item and item not in result:
            result.append(item)
    return result


def _bullet_section(header: str, items: Sequence[str] | None) -> list[str]:
    values = _unique(items)
    if not values:
        return []
    return [header, *(f"- {value}" for value in values), ""]


def build_triage_prompt(
    title: str,
    description: str,
    departments: Sequence[Department],
    done_actions: Sequence[str] | None = None,
    rejected_actions: Sequence[str] | None = None,
    prior_suggestions: Sequence[str] | None = None,
) -> str:
    """Portuguese triage prompt asking for a single JSON object."""
    lines = [
        "Você é um assistente para triagem de chamados de TI.",
        "",
        "Dados do ticket:",
        f"Título: {title}",
        f"Descrição: {description}",
        "",
    ]
    lines += _bullet_section("Ações já realizadas pelo usuário (NÃO sugerir novamente):", done_actions)
    lines += _bullet_section("Ações rejeitadas/que não ajudaram (EVITAR repetir):", rejected_actions)
    lines += _bullet_section("Sugestões anteriores já mostradas:", prior_suggestions)
    lines += [
        "Departamentos disponíveis (escolha um pelo NOME exato):",
        ", ".join(d.name for d in departments),
        "",
        "Regras:",
        "- Gere sugestões PASSO-A-PASSO objetivas e verificáveis.",
        "- NÃO repita nada que já foi feito/rejeitado/mostrado.",
        "- Se faltar informação, faça perguntas objetivas de diagnóstico.",
        "- Caso aplicável, indique o melhor próximo passo ('nextAction').",
        "",
        "Retorne APENAS um JSON com as chaves:",
        "{ suggestions: string[], predictedDepartmentName?: string, confidence?: number, "
        "priorityHint?: 'critica'|'alta'|'media'|'baixa', rationale?: string, "
        "nextAction?: string, followUpQuestions?: string[] }",
        "Não inclua texto fora do JSON.",
    ]
    return "\n".join(lines)


def _string_list(value: Any, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    result: list[str] = []
    for item in value:
        if isinstance(item, str) and item.strip() and item not in result:
            result.append(item)
        if len(result) == limit:
            break
    return result


def _optional_string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _confidence(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return min(1.0, max(0.0, float(value)))


def parse_model_answer(data: dict[str, Any], departments: Sequence[Department]) -> AdvisoryResult:
    """
    Read the model's JSON defensively.

    Missing or mistyped fields are left empty. The department is matched by
    name, case-insensitively, against ``departments``.
    """
    result = AdvisoryResult(
        source=SOURCE_GEMINI,
        suggestions=_string_list(data.get("suggestions"), MAX_SUGGESTIONS),
        confidence=_confidence(data.get("confidence")),
        priority_hint=_optional_string(data.get("priorityHint")),
        rationale=_optional_string(data.get("rationale")),
        next_action=_optional_string(data.get("nextAction")),
        follow_up_questions=_string_list(data.get("followUpQuestions"), MAX_FOLLOW_UP_QUESTIONS),
    )

    name = _optional_string(data.get("predictedDepartmentName"))
    if name is not None:
        wanted = name.strip().casefold()
        for department in departments:
            if department.name.casefold() == wanted:
                result.predicted_department_id = department.id
                result.predicted_department_name = department.name
                break

    return result
