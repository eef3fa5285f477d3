# atelie/usecases/etapas.py
"""
UC: ciclo de vida das etapas (criar pipeline, avançar, mover, editar status,
atribuir responsável).

Cada mutação:
- trava o produto (mesmo produto nunca intercala avanço/movimento/edição);
- lê as etapas e grava o plano numa única transação (BEGIN IMMEDIATE),
  com checagem de versão por linha;
- registra a operação nos logs de etapas e de transações.

`NoNextStage` no avanço é reportado no resultado (nada muda), não
interrompe o chamador.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from atelie.config import DB_PATH
from atelie.domain.errors import AtelieError, NoNextStage, StageNotFound
from atelie.domain.lifecycle import (
    initial_pipeline,
    plan_advance,
    plan_move,
    plan_status_update,
)
from atelie.domain.models import ProductionStage, iso
from atelie.infra.db import transaction
from atelie.infra.locks import PRODUCT_LOCKS
from atelie.infra.logger import (
    log_database_operation,
    log_stage_change,
    log_system_event,
    log_transaction,
)
from atelie.infra.repositories import ProductRepo, StageRepo
from atelie.usecases.cronograma import recalculate_product


@dataclass
class AdvanceResult:
    product_id: int
    advanced: bool
    completed_stage: Optional[str] = None
    started_stage: Optional[str] = None
    actual_date: Optional[date] = None
    no_next_stage: Optional[NoNextStage] = None

    @property
    def message(self) -> str:
        if self.advanced:
            return f"Produto avançado para '{self.started_stage}'"
        return str(self.no_next_stage)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["actual_date"] = iso(self.actual_date)
        out["no_next_stage"] = str(self.no_next_stage) if self.no_next_stage else None
        out["message"] = self.message
        return out


def _stage_summary(st: ProductionStage) -> Dict[str, Any]:
    return {
        "stage_id": st.id,
        "stage_name": st.stage_name,
        "stage_order": st.stage_order,
        "status": st.status,
        "actual_date": iso(st.actual_date),
    }


def ensure_pipeline(product_id: int, db_path: str = DB_PATH, today: Optional[date] = None) -> bool:
    """Cria as seis etapas do produto, se ainda não existirem, e agenda as datas.

    Devolve True se o pipeline foi criado agora. A criação e o agendamento
    são passos separados: se a configuração estiver incompleta as etapas
    ficam criadas e `ConfigurationMissing` é propagada.
    """
    ProductRepo(db_path).get(product_id)
    stage_repo = StageRepo(db_path)
    with PRODUCT_LOCKS.hold(db_path, product_id):
        with transaction(db_path) as conn:
            if stage_repo.list_for_product(product_id, conn=conn):
                return False
            n = stage_repo.insert_many(initial_pipeline(product_id), conn)

    log_database_operation("production_stage", "INSERT_MANY", n, product_id=product_id)
    log_stage_change("create", product_id, None, stages=n)
    recalculate_product(product_id, db_path=db_path, today=today)
    return True


def ensure_all_pipelines(db_path: str = DB_PATH, today: Optional[date] = None) -> Dict[str, Any]:
    """Cria pipelines para todos os produtos sem etapas; falhas são agregadas."""
    created = 0
    erros: List[Dict[str, Any]] = []
    for pid in ProductRepo(db_path).ids_without_stages():
        try:
            if ensure_pipeline(pid, db_path=db_path, today=today):
                created += 1
        except AtelieError as e:
            erros.append({"product_id": pid, "mensagem": str(e)})
    if erros:
        log_system_event("pipelines_incompletos", {"erros": erros}, level="warning")
    return {"criados": created, "erros": erros}


def advance_product(product_id: int, db_path: str = DB_PATH, today: Optional[date] = None) -> AdvanceResult:
    """Conclui a etapa atual (data real = hoje) e ativa a próxima, atomicamente."""
    today = today or date.today()
    stage_repo = StageRepo(db_path)
    try:
        with PRODUCT_LOCKS.hold(db_path, product_id):
            with transaction(db_path) as conn:
                stages = stage_repo.list_for_product(product_id, conn=conn)
                done, started = plan_advance(stages, product_id, today)
                stage_repo.save([done, started], conn)
    except NoNextStage as e:
        log_stage_change("advance_noop", product_id, e.stage_name)
        log_transaction("avancar_etapa", {"product_id": product_id}, result="no_next_stage")
        return AdvanceResult(product_id=product_id, advanced=False, no_next_stage=e)
    except AtelieError as e:
        log_transaction("avancar_etapa", {"product_id": product_id}, error=str(e))
        raise

    log_stage_change("advance", product_id, done.stage_name, done.status, actual_date=iso(today))
    log_stage_change("advance", product_id, started.stage_name, started.status)
    log_transaction("avancar_etapa", {"product_id": product_id},
                    result={"de": done.stage_name, "para": started.stage_name})
    return AdvanceResult(
        product_id=product_id,
        advanced=True,
        completed_stage=done.stage_name,
        started_stage=started.stage_name,
        actual_date=today,
    )


def move_product_to_stage(product_id: int, stage_name: str, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Move o produto diretamente para `stage_name` (arrastar e soltar no Kanban)."""
    stage_repo = StageRepo(db_path)
    try:
        with PRODUCT_LOCKS.hold(db_path, product_id):
            with transaction(db_path) as conn:
                stages = stage_repo.list_for_product(product_id, conn=conn)
                changed = plan_move(stages, product_id, stage_name)
                stage_repo.save(changed, conn)
    except AtelieError as e:
        log_transaction("mover_etapa", {"product_id": product_id, "stage_name": stage_name}, error=str(e))
        raise

    for st in changed:
        log_stage_change("move", product_id, st.stage_name, st.status)
    log_transaction("mover_etapa", {"product_id": product_id, "stage_name": stage_name},
                    result={"alteradas": len(changed)})
    return [_stage_summary(st) for st in changed]


def update_stage_status(
    stage_id: int,
    status: str,
    actual_date: Optional[date] = None,
    db_path: str = DB_PATH,
) -> ProductionStage:
    """Edição manual de status (e, opcionalmente, data real) de uma etapa."""
    stage_repo = StageRepo(db_path)
    found = stage_repo.get(stage_id)
    if found is None:
        raise StageNotFound(None, stage_id)
    try:
        with PRODUCT_LOCKS.hold(db_path, found.product_id):
            with transaction(db_path) as conn:
                current = stage_repo.get(stage_id, conn=conn)
                updated = plan_status_update(current, status, actual_date)
                stage_repo.save([updated], conn)
    except AtelieError as e:
        log_transaction("editar_status", {"stage_id": stage_id, "status": status}, error=str(e))
        raise

    log_stage_change("status", updated.product_id, updated.stage_name, updated.status,
                     actual_date=iso(updated.actual_date))
    log_transaction("editar_status", {"stage_id": stage_id}, result=_stage_summary(updated))
    return updated


def assign_stage(
    stage_id: int,
    responsible_party: Optional[str] = None,
    stylist_id: Optional[int] = None,
    notes: Optional[str] = None,
    db_path: str = DB_PATH,
) -> ProductionStage:
    """Define responsável, estilista e/ou observações de uma etapa (campos omitidos ficam como estão)."""
    stage_repo = StageRepo(db_path)
    found = stage_repo.get(stage_id)
    if found is None:
        raise StageNotFound(None, stage_id)
    with PRODUCT_LOCKS.hold(db_path, found.product_id):
        stage_repo.assign(stage_id, responsible_party, stylist_id, notes)
    updated = stage_repo.get(stage_id)
    log_stage_change("assign", updated.product_id, updated.stage_name,
                     responsible_party=updated.responsible_party, stylist_id=updated.stylist_id)
    log_database_operation("production_stage", "UPDATE", 1, stage_id=stage_id)
    return updated
