"""
Department Routing.

Keyword-weighted guess of the department a ticket belongs to, plus the
suggestion state used by forms that call it while the user types.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Generic, Protocol, Sequence, TypeVar


class NamedDepartment(Protocol):
    """Anything with a department name."""

    @property
    def name(self) -> str: ...


D = TypeVar("D", bound=NamedDepartment)


KEYWORD_WEIGHTS: dict[str, int] = {
    "strong": 4,
    "medium": 2,
    "weak": 1,
}

NAME_MENTION_BONUS = 6

_RAW_KEYWORDS: dict[str, dict[str, list[str]]] = {
    "ti": {
        "strong": [
            "setor tecnico", "suporte tecnico", "suporte ti", "helpdesk",
            "problema de rede", "rede fora do ar", "servidor fora do ar",
            "sistema fora do ar", "acesso bloqueado", "instabilidade no sistema",
        ],
        "medium": [
            "ti", "tecnologia", "informatica", "computador", "computadores", "pc",
            "notebook", "notebooks", "laptop", "laptops", "desktop", "monitor",
            "monitores", "mouse", "mouses", "teclado", "teclados", "impressora",
            "impressoras", "periferico", "perifericos", "rede", "servidor",
            "servidores", "sistema", "sistemas", "software", "hardware", "vpn",
            "senha", "senhas", "login", "aplicacao", "aplicacoes", "licenca",
        ],
        "weak": [
            "bug", "erro", "crash", "update", "atualizacao", "manutencao de sistema",
        ],
    },
    "financeiro": {
        "strong": [
            "contas a pagar", "contas a receber", "pagamento atrasado",
            "pagamento pendente", "boletos atrasados", "nota fiscal",
            "nf bloqueada", "aprovacao de pagamento", "centro de custo",
        ],
        "medium": [
            "financeiro", "fatura", "faturas", "faturamento", "boleto", "boletos",
            "reembolso", "custos", "orcamento", "contabil", "contabilidade",
            "tesouraria", "fluxo de caixa", "darf", "imposto", "tributo", "pix",
            "transferencia bancaria",
        ],
        "weak": [
            "adiantamento", "adiantamentos", "nota", "liquidacao",
            "relatorio financeiro",
        ],
    },
    "rh": {
        "strong": [
            "folha de pagamento", "processo seletivo", "recrutamento", "admissao",
            "demissao", "beneficios", "ferias", "vale transporte",
            "vale alimentacao", "cartao ponto", "gestao de pessoas",
        ],
        "medium": [
            "rh", "recursos humanos", "folha", "beneficio", "holerite",
            "contratacao", "contratos de trabalho", "treinamento", "integracao",
            "ponto", "escala", "avaliacao", "clima organizacional",
        ],
        "weak": [
            "funcionario", "funcionarios", "colaborador", "colaboradores", "time",
            "equipe", "pessoal",
        ],
    },
    "producao": {
        "strong": [
            "linha de producao", "linha parada", "maquina parada",
            "maquina quebrou", "parada de manutencao", "chao de fabrica",
            "fabrica parada", "ordem de producao", "setup de maquina", "pcp",
        ],
        "medium": [
            "producao", "maquina", "maquinas", "equipamento", "equipamentos",
            "manutencao", "manutencoes", "industrial", "estoque", "almoxarifado",
            "logistica interna", "operacao", "operacoes", "operador", "qualidade",
            "embalagem",
        ],
        "weak": [
            "linha", "turno", "turnos", "planta", "galpao", "producao de serie",
        ],
    },
}

_NON_ALNUM_SPACE = re.compile(r"[^a-z0-9\s]")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_WHITESPACE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Lowercase and drop combining marks (``Produção`` -> ``producao``)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def normalize_keyword(keyword: str) -> str:
    return _WHITESPACE.sub(" ", _NON_ALNUM_SPACE.sub(" ", strip_accents(keyword))).strip()


def normalize_department_name(name: str) -> str:
    """``T.I`` -> ``ti``; used to look up the keyword table."""
    return _NON_ALNUM.sub("", strip_accents(name))


def tokenize(text: str) -> tuple[str, set[str]]:
    """Return the flattened text and its token set."""
    flat = _WHITESPACE.sub(" ", _NON_ALNUM_SPACE.sub(" ", strip_accents(text))).strip()
    tokens = {token for token in flat.split(" ") if token}
    return flat, tokens


KEYWORD_TABLE: dict[str, dict[str, list[str]]] = {
    department: {
        strength: [kw for kw in (normalize_keyword(k) for k in config.get(strength, [])) if kw]
        for strength in KEYWORD_WEIGHTS
    }
    for department, config in _RAW_KEYWORDS.items()
}


def score_keywords(flat: str, tokens: set[str], config: dict[str, list[str]]) -> int:
    """
    Score text against one department's keyword tiers.

    Phrases count double their tier weight on a substring hit. Single words
    count their weight on an exact token, or ``max(1, weight - 1)`` when only
    the singular/plural variant is present.
    """
    score = 0
    for strength, weight in KEYWORD_WEIGHTS.items():
        for keyword in config.get(strength, []):
            if " " in keyword:
                if keyword in flat:
                    score += weight * 2
                continue

            if keyword in tokens:
                score += weight
                continue

            if keyword.endswith("s"):
                variant = keyword[:-1]
            else:
                variant = f"{keyword}s"
            if variant in tokens:
                score += max(1, weight - 1)
    return score


def guess_department(title: str, description: str, departments: Sequence[D]) -> D | None:
    """
    Guess the most likely department for a ticket text.

    Only departments in ``departments`` with a known keyword table are
    scored. The strictly highest positive score wins and ties keep the
    first department seen. Returns None when nothing scores.
    """
    if not departments:
        return None

    raw = f"{title or ''} {description or ''}".strip()
    if not raw:
        return None

    flat, tokens = tokenize(raw)

    best: D | None = None
    best_score = 0
    for department in departments:
        key = normalize_department_name(department.name)
        config = KEYWORD_TABLE.get(key)
        if config is None:
            continue

        score = score_keywords(flat, tokens, config)
        if key in tokens:
            score += NAME_MENTION_BONUS

        if score > best_score:
            best, best_score = department, score

    return best


@dataclass
class DepartmentSelection(Generic[D]):
    """
    Form-side department choice fed by :func:`guess_department`.

    Guesses fill the field until the user picks a department themselves.
    After that a different guess is only offered as a pending suggestion
    that can be accepted or dismissed.
    """

    selected: D | None = None
    manually_selected: bool = False
    pending_suggestion: D | None = None
    _last_guess: D | None = None
    _dismissed: D | None = None

    def offer(self, guess: D | None) -> None:
        """Feed the latest guess after the text changed."""
        changed = guess != self._last_guess
        self._last_guess = guess

        if not self.manually_selected:
            if guess is not None:
                self.selected = guess
            self.pending_suggestion = None
            return

        if guess is None or guess == self.selected:
            self.pending_suggestion = None
            return

        if changed:
            self._dismissed = None
        if guess != self._dismissed:
            self.pending_suggestion = guess

    def choose(self, department: D) -> None:
        """Record a manual choice; it is never overwritten by guesses."""
        self.selected = department
        self.manually_selected = True
        self.pending_suggestion = None

    def accept_suggestion(self) -> None:
        if self.pending_suggestion is not None:
            self.selected = self.pending_suggestion
            self.pending_suggestion = None

    def dismiss_suggestion(self) -> None:
        self._dismissed = self.pending_suggestion
        self.pending_suggestion = None
