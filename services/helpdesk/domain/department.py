"""Department routing targets."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from services.helpdesk.domain.ticket import utc_now


@dataclass
class Department:
    """A routing target. Ticket counts are computed by repository queries."""

    name: str
    id: int | None = None
    description: str | None = None
    is_active: bool = True
    color: str | None = None
    is_deleted: bool = False
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_selectable(self) -> bool:
        return self.is_active and not self.is_deleted


# name, description, color
DEFAULT_DEPARTMENTS: list[tuple[str, str, str]] = [
    ("Financeiro", "Pagamentos, faturamento e orçamento", "#4ECDC4"),
    ("RH", "Admissão, folha e benefícios", "#55EFC4"),
    ("Produção", "PCP, logística interna e chão de fábrica", "#00CEC9"),
    ("T.I", "Suporte técnico, sistemas e infraestrutura", "#6C5CE7"),
]
