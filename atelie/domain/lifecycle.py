# atelie/domain/lifecycle.py
"""
Máquina de estados do ciclo de vida das etapas.

Estados por etapa: pendente → em_andamento → concluida. O status
`atrasada` não é alvo de nenhuma transição automática: o atraso é
calculado pelo avaliador de alertas e só é gravado via edição manual
(`plan_status_update`).

As funções aqui são puras: recebem as etapas de um produto e devolvem as
etapas alteradas (cópias). A camada de casos de uso grava o resultado numa
única transação.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional

from atelie.config import (
    STAGE_ORDER,
    STAGE_STATUSES,
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
)
from atelie.domain.errors import InvalidStatus, NoNextStage, StageNotFound
from atelie.domain.models import ProductionStage

ACTIVE_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS)


def ordered(stages: Iterable[ProductionStage]) -> List[ProductionStage]:
    return sorted(stages, key=lambda s: s.stage_order)


def current_stage(stages: Iterable[ProductionStage]) -> Optional[ProductionStage]:
    """Etapa atual: a primeira pendente/em andamento; senão a de maior ordem.

    Produto sem etapas → None ("sem dados de etapa", não é erro).
    """
    seq = ordered(stages)
    if not seq:
        return None
    for st in seq:
        if st.status in ACTIVE_STATUSES:
            return st
    return seq[-1]


def initial_pipeline(product_id: int) -> List[ProductionStage]:
    """Etapas iniciais de um produto: a primeira em andamento, as demais pendentes."""
    return [
        ProductionStage(
            id=None,
            product_id=product_id,
            stage_name=name,
            stage_order=i,
            status=STATUS_IN_PROGRESS if i == 1 else STATUS_PENDING,
        )
        for i, name in enumerate(STAGE_ORDER, start=1)
    ]


def plan_advance(stages: Iterable[ProductionStage], product_id: int, today: date) -> List[ProductionStage]:
    """Conclui a etapa atual (actual_date = hoje) e ativa a seguinte.

    Levanta `NoNextStage` se não houver etapa com `stage_order + 1`; nesse
    caso nada é alterado.
    """
    seq = ordered(stages)
    cur = current_stage(seq)
    if cur is None:
        raise StageNotFound(product_id, "atual")
    nxt = next((s for s in seq if s.stage_order == cur.stage_order + 1), None)
    if nxt is None:
        raise NoNextStage(product_id, cur.stage_name)
    return [
        replace(cur, status=STATUS_DONE, actual_date=today),
        replace(nxt, status=STATUS_IN_PROGRESS),
    ]


def plan_move(stages: Iterable[ProductionStage], product_id: int, target_stage_name: str) -> List[ProductionStage]:
    """Move o produto diretamente para `target_stage_name` (arrastar e soltar).

    Transições não adjacentes são permitidas. Para manter uma única etapa
    atual:
    - etapas anteriores ainda não concluídas viram `concluida` sem
      `actual_date` (foram puladas);
    - a etapa alvo vira `em_andamento` (e perde `actual_date`);
    - etapas posteriores voltam a `pendente` sem `actual_date`.
    Só as etapas efetivamente alteradas são devolvidas.
    """
    seq = ordered(stages)
    target = next((s for s in seq if s.stage_name == target_stage_name), None)
    if target is None:
        raise StageNotFound(product_id, target_stage_name)

    changed: List[ProductionStage] = []
    for st in seq:
        if st.stage_order < target.stage_order:
            new = st if st.status == STATUS_DONE else replace(st, status=STATUS_DONE)
        elif st.stage_order == target.stage_order:
            new = replace(st, status=STATUS_IN_PROGRESS, actual_date=None)
        else:
            new = replace(st, status=STATUS_PENDING, actual_date=None)
        if new.status != st.status or new.actual_date != st.actual_date:
            changed.append(new)
    return changed


def plan_status_update(stage: ProductionStage, status: str, actual_date: Optional[date] = None) -> ProductionStage:
    """Edição direta de status (caminho de correção manual).

    Nenhuma restrição de ordem é aplicada; `actual_date` só é sobrescrita
    quando informada.
    """
    if status not in STAGE_STATUSES:
        raise InvalidStatus(status)
    if actual_date is not None:
        return replace(stage, status=status, actual_date=actual_date)
    return replace(stage, status=status)


def active_count(stages: Iterable[ProductionStage]) -> int:
    """Quantidade de etapas em andamento (o invariante exige no máximo uma)."""
    return sum(1 for s in stages if s.status == STATUS_IN_PROGRESS)
