"""
Políticas de atraso e severidade de alertas.

Este módulo contém as regras que classificam um produto em relação à
data prevista da sua etapa atual. Nada é persistido: os alertas são
recalculados a cada atualização do painel, portanto não existe
reconhecimento nem adiamento de alerta.
"""

from __future__ import annotations

from datetime import date
from math import ceil
from typing import Iterable, List, Optional

from atelie.config import STATUS_DONE
from atelie.domain.models import ProductionStage, ProductWithStage, UrgentAlert

SEVERITY_CRITICAL = "critical"
SEVERITY_URGENT = "urgent"
SEVERITY_WARNING = "warning"

SEVERITY_LABELS = {
    SEVERITY_CRITICAL: "CRÍTICO",
    SEVERITY_URGENT: "URGENTE",
    SEVERITY_WARNING: "ATENÇÃO",
}


def days_remaining(expected: date, today: date) -> int:
    """Dias (com sinal) entre hoje e a data prevista; negativo = atrasado."""
    # comparação apenas de datas: a hora do dia não entra na conta
    return int(ceil((expected - today).days))


def stage_is_overdue(stage: Optional[ProductionStage], today: date) -> bool:
    if stage is None or stage.expected_date is None:
        return False
    return stage.expected_date < today and stage.status != STATUS_DONE


def is_overdue(product: ProductWithStage, today: date) -> bool:
    """True se a etapa atual tem data prevista anterior a hoje e não foi concluída."""
    return stage_is_overdue(product.current_stage, today)


def severity_for(dias: int) -> Optional[str]:
    """Classifica os dias restantes nas faixas de severidade.

    Regras (avaliadas nesta ordem):
        - ``dias < 0``        → ``'critical'``
        - ``0 <= dias <= 1``  → ``'urgent'``
        - ``2 <= dias <= 3``  → ``'warning'``
        - ``dias > 3``        → ``None`` (nenhum alerta)
    """
    if dias < 0:
        return SEVERITY_CRITICAL
    if dias <= 1:
        return SEVERITY_URGENT
    if dias <= 3:
        return SEVERITY_WARNING
    return None


def evaluate_alert(product: ProductWithStage, today: date) -> Optional[UrgentAlert]:
    stage = product.current_stage
    if stage is None or stage.expected_date is None or stage.status == STATUS_DONE:
        return None
    dias = days_remaining(stage.expected_date, today)
    severity = severity_for(dias)
    if severity is None:
        return None
    return UrgentAlert(
        product_id=product.id,
        product_code=product.code,
        product_name=product.name,
        collection_name=product.collection_name,
        client_name=product.client_name,
        stylist_name=product.stylist_name,
        current_stage=stage.stage_name,
        expected_date=stage.expected_date,
        days_remaining=dias,
        severity=severity,
        is_overdue=stage_is_overdue(stage, today),
    )


def urgent_alerts(products: Iterable[ProductWithStage], today: date) -> List[UrgentAlert]:
    """Lista de alertas ordenada do mais atrasado para o mais folgado."""
    out = [a for a in (evaluate_alert(p, today) for p in products) if a is not None]
    out.sort(key=lambda a: (a.days_remaining, a.product_code))
    return out
