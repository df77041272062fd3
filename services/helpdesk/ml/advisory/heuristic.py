"""
Heuristic Triage Advice.

Deterministic fallback used when no external classifier is configured or
it fails. Regex signal detectors pick canned troubleshooting steps, simple
keyword buckets predict a department, and urgency words give a priority
hint.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from services.helpdesk.domain.department import Department
from services.helpdesk.ml.advisory.result import (
    MAX_SUGGESTIONS,
    SOURCE_HEURISTIC,
    AdvisoryResult,
)


MAX_CANDIDATES = 7

ERROR_CODE_PATTERN = re.compile(
    r"\b(erro|error|exce(c|ç)ao|exception|codigo|código|0x[0-9a-f]+|\d{3,})\b"
)

CRITICAL_PATTERN = re.compile(r"\b(parado|urgente|critico|crítico|inacessível|inacessivel)\b")
HIGH_PATTERN = re.compile(r"\b(importante|falhando|instavel|instável|intermitente)\b")

GENERIC_STEPS = [
    "Detalhe quando o problema começou e se ocorre sempre ou intermitente",
    "Teste se o problema ocorre em outro usuário ou computador para isolar",
    "Informe o impacto no negócio (quem/quantos afetados)",
]

EXACT_ERROR_STEP = "Copie/cole a mensagem de erro exata (texto ou print)"

CLARIFYING_QUESTIONS = [
    "Envie a mensagem de erro completa e o horário aproximado da ocorrência",
    "Informe se outros usuários também são afetados ou somente você",
]

EXACT_ERROR_QUESTION = "Qual é a mensagem de erro exata apresentada?"
OTHER_USERS_QUESTION = "O problema ocorre em outros usuários/dispositivos?"


@dataclass(frozen=True)
class SignalCategory:
    """A keyword cluster and the steps it contributes when matched."""

    name: str
    pattern: re.Pattern[str]
    steps: tuple[str, str, str]


SIGNAL_CATEGORIES: tuple[SignalCategory, ...] = (
    SignalCategory(
        "network",
        re.compile(r"\b(rede|internet|wifi|ethernet|vpn|dns|gateway)\b"),
        (
            "Execute ping para o gateway e para um site externo para diferenciar LAN/Internet",
            "Se possível, teste via cabo e Wi-Fi para comparar",
            "Renove o IP e limpe DNS (ipconfig /renew e ipconfig /flushdns)",
        ),
    ),
    SignalCategory(
        "access",
        re.compile(r"\b(acesso|login|senha|permiss|autentic|sso|ldap|ad)\b"),
        (
            "Confirme se o usuário está ativo e com permissões corretas",
            "Sincronize/redefina a senha e aguarde replicação",
            "Verifique bloqueios por tentativas falhas (AD/SSO)",
        ),
    ),
    SignalCategory(
        "email",
        re.compile(r"\b(email|e-mail|outlook|gmail|exchange)\b"),
        (
            "Verifique cota da caixa e tamanho de anexos",
            "Abra o cliente em modo seguro e desative complementos",
            "Teste acesso via webmail para comparar",
        ),
    ),
    SignalCategory(
        "browser",
        re.compile(r"\b(navegador|chrome|edge|firefox|safari|cache|cookie|extens(oes|ões))\b"),
        (
            "Limpe cache/cookies e teste em janela anônima",
            "Desative extensões para descartar interferências",
            "Compare em outro navegador para isolar",
        ),
    ),
    SignalCategory(
        "device",
        re.compile(
            r"\b(mouse|teclado|monitor|usb|webcam|headset|microfone|dispositivo|perif(erico|érico))\b"
        ),
        (
            "Teste o dispositivo em outra porta ou computador",
            "Reinstale/atualize o driver do dispositivo",
            "Verifique cabos/alimentação e conexões físicas",
        ),
    ),
    SignalCategory(
        "app",
        re.compile(r"\b(app|aplica(c|ç)ao|sistema|cliente|atualiza(c|ç)ao|vers(ao|ão))\b"),
        (
            "Confirme versão do aplicativo e compatibilidade",
            "Reproduza o erro seguindo passos mínimos e registre",
            "Consulte logs do aplicativo para mensagens relacionadas",
        ),
    ),
)


@dataclass(frozen=True)
class DepartmentBucket:
    """Text terms that, when present, add ``points`` to matching departments."""

    terms: tuple[str, ...]
    name_markers: tuple[str, ...]
    description_markers: tuple[str, ...]
    points: int


# "ti" is matched as a whole word in the ticket text; every other term is a substring
DEPARTMENT_BUCKETS: tuple[DepartmentBucket, ...] = (
    DepartmentBucket(
        terms=("fatura", "pagamento", "boleto", "nota fiscal", "cobrança", "orcamento", "orçamento"),
        name_markers=("finance",),
        description_markers=("finance",),
        points=3,
    ),
    DepartmentBucket(
        terms=(
            "folha", "beneficio", "benefício", "ferias", "férias", "admissao", "admissão",
            "demissao", "demissão", "colaborador",
        ),
        name_markers=("rh",),
        description_markers=("recursos humanos", "folha"),
        points=3,
    ),
    DepartmentBucket(
        terms=(
            "producao", "produção", "maquina", "máquina", "linha", "pcp", "estoque",
            "logistica", "logística",
        ),
        name_markers=("produ",),
        description_markers=("produção", "pcp"),
        points=3,
    ),
    DepartmentBucket(
        terms=(
            "rede", "sistema", "ti", "bug", "erro", "impressora", "computador", "acesso",
            "vpn", "servidor",
        ),
        name_markers=("t.i", "ti"),
        description_markers=("suporte", "infraestrutura", "sistemas"),
        points=3,
    ),
    DepartmentBucket(
        terms=("mouse", "teclado", "periferico", "periférico", "notebook", "desktop"),
        name_markers=("t.i", "ti"),
        description_markers=("suporte",),
        points=2,
    ),
)

_WHOLE_WORD_TERMS = frozenset({"ti"})


def _mentions(text: str, term: str) -> bool:
    if term in _WHOLE_WORD_TERMS:
        return re.search(rf"\b{re.escape(term)}\b", text) is not None
    return term in text


def _casefold_set(items: Sequence[str] | None) -> set[str]:
    return {item.strip().casefold() for item in items or [] if item and item.strip()}


def has_error_code(text: str) -> bool:
    return ERROR_CODE_PATTERN.search(text.lower()) is not None


def matched_categories(text: str) -> list[SignalCategory]:
    lowered = text.lower()
    return [category for category in SIGNAL_CATEGORIES if category.pattern.search(lowered)]


def candidate_steps(text: str) -> list[str]:
    """Unfiltered step list in presentation order."""
    steps = list(GENERIC_STEPS)
    if not has_error_code(text):
        steps.append(EXACT_ERROR_STEP)
    for category in matched_categories(text):
        steps.extend(category.steps)
    return steps


def select_suggestions(
    candidates: Sequence[str],
    done_actions: Sequence[str] | None = None,
    rejected_actions: Sequence[str] | None = None,
    prior_suggestions: Sequence[str] | None = None,
) -> list[str]:
    """
    Drop anything already done, rejected or shown, case-insensitively.

    At most seven candidates survive. When none do, the clarifying questions
    not yet shown are returned instead.
    """
    excluded = _casefold_set(done_actions) | _casefold_set(rejected_actions) | _casefold_set(prior_suggestions)
    prior = _casefold_set(prior_suggestions)

    seen: set[str] = set()
    selected: list[str] = []
    for step in candidates:
        key = step.casefold()
        if key in excluded or key in seen:
            continue
        seen.add(key)
        selected.append(step)
        if len(selected) == MAX_CANDIDATES:
            break

    if not selected:
        selected = [q for q in CLARIFYING_QUESTIONS if q.casefold() not in prior]

    return selected


def follow_up_questions(text: str) -> list[str]:
    questions = []
    if not has_error_code(text):
        questions.append(EXACT_ERROR_QUESTION)
    questions.append(OTHER_USERS_QUESTION)
    return questions


def score_department(text: str, department: Department) -> int:
    """Sum the bucket points that apply to one department."""
    lowered = text.lower()
    name = department.name.lower()
    description = (department.description or "").lower()

    score = 0
    for bucket in DEPARTMENT_BUCKETS:
        if not any(_mentions(lowered, term) for term in bucket.terms):
            continue
        if any(marker in name for marker in bucket.name_markers) or any(
            marker in description for marker in bucket.description_markers
        ):
            score += bucket.points
    return score


def predict_department(text: str, departments: Sequence[Department]) -> tuple[Department, int] | None:
    """Best scoring department; ties keep the first one listed."""
    best: tuple[Department, int] | None = None
    for department in departments:
        score = score_department(text, department)
        if score > 0 and (best is None or score > best[1]):
            best = (department, score)
    return best


def priority_hint(text: str) -> str | None:
    lowered = text.lower()
    if CRITICAL_PATTERN.search(lowered):
        return "critica"
    if HIGH_PATTERN.search(lowered):
        return "alta"
    return None


def heuristic_analysis(
    title: str,
    description: str,
    departments: Sequence[Department],
    done_actions: Sequence[str] | None = None,
    rejected_actions: Sequence[str] | None = None,
    prior_suggestions: Sequence[str] | None = None,
) -> AdvisoryResult:
    """Build advice from the ticket text alone. Never raises for valid strings."""
    text = f"{title} {description}".lower()

    suggestions = select_suggestions(
        candidate_steps(text),
        done_actions=done_actions,
        rejected_actions=rejected_actions,
        prior_suggestions=prior_suggestions,
    )[:MAX_SUGGESTIONS]

    result = AdvisoryResult(
        source=SOURCE_HEURISTIC,
        suggestions=suggestions,
        next_action=suggestions[0] if suggestions else None,
        follow_up_questions=follow_up_questions(text),
        priority_hint=priority_hint(text),
    )

    prediction = predict_department(text, departments)
    if prediction is not None:
        department, score = prediction
        result.predicted_department_id = department.id
        result.predicted_department_name = department.name
        result.confidence = min(0.9, 0.5 + 0.1 * score)
        result.rationale = f"Classificação por palavras-chave encontradas para '{department.name}'."

    return result
