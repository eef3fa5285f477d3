# atelie/usecases/cronograma.py
"""
Caso de uso: recalcular cronogramas (datas previstas das etapas).

Fluxo por produto:
1) Trava o produto e abre uma transação.
2) Lê prioridade, etapas e configuração.
3) Recalcula as datas das etapas não concluídas (`schedule_pipeline`).
4) Grava apenas as datas que mudaram (checagem de versão por linha).

Em lote (coleção ou todos) cada produto é uma transação independente:
uma falha não desfaz nem bloqueia os demais e entra no resumo. O prazo
(`timeout_seconds`) só é verificado entre produtos.

Recalcular duas vezes sem mudanças de configuração produz as mesmas datas.
"""

from __future__ import annotations

import sqlite3
import time
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from atelie.config import DB_PATH
from atelie.domain.errors import AtelieError, InvalidSelector, PartialRecalculationFailure
from atelie.domain.models import StageConfig
from atelie.domain.scheduler import schedule_pipeline
from atelie.infra.db import transaction
from atelie.infra.locks import PRODUCT_LOCKS
from atelie.infra.logger import (
    log_database_operation,
    log_schedule,
    log_system_event,
    log_transaction,
)
from atelie.infra.migrations import apply_migrations
from atelie.infra.repositories import ProductRepo, StageConfigRepo, StageRepo
from atelie.infra.views import create_views


SELECTOR_PRODUCT = "productId"
SELECTOR_COLLECTION = "collectionId"
SELECTOR_ALL = "recalculateAll"


@dataclass
class RecalculationSummary:
    """Resumo de um recálculo em lote (sucesso parcial é aceitável)."""
    selector: str
    requested: int = 0
    succeeded: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)
    interrupted: bool = False

    @property
    def partial_failure(self) -> bool:
        return bool(self.failures)

    @property
    def processed(self) -> int:
        return self.succeeded + len(self.failures)

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialRecalculationFailure(self)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["processed"] = self.processed
        return out


def prepare_db(db_path: str) -> None:
    apply_migrations(db_path)
    create_views(db_path)


def recalculate_product(
    product_id: int,
    db_path: str = DB_PATH,
    today: Optional[date] = None,
    configs: Optional[Mapping[str, StageConfig]] = None,
) -> int:
    """Recalcula as datas previstas de um produto; devolve quantas etapas mudaram.

    Levanta `ProductNotFound` ou `ConfigurationMissing` sem gravar nada.
    """
    today = today or date.today()
    record = ProductRepo(db_path).get(product_id)
    if configs is None:
        configs = StageConfigRepo(db_path).map_by_name()
    stage_repo = StageRepo(db_path)

    with PRODUCT_LOCKS.hold(db_path, product_id):
        with transaction(db_path) as conn:
            stages = stage_repo.list_for_product(product_id, conn=conn)
            plan = schedule_pipeline(stages, configs, record.product.priority, today)
            changed = [
                replace(st, expected_date=new_date)
                for st, new_date in plan
                if st.expected_date != new_date
            ]
            stage_repo.save(changed, conn)

    log_schedule("recalculate", product_id, priority=record.product.priority,
                 stages=len(plan), changed=len(changed), today=today.isoformat())
    log_database_operation("production_stage", "UPDATE", len(changed), product_id=product_id)
    return len(changed)


def recalculate_many(
    product_ids: Iterable[int],
    db_path: str = DB_PATH,
    today: Optional[date] = None,
    selector: str = SELECTOR_ALL,
    timeout_seconds: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> RecalculationSummary:
    """Recalcula vários produtos, isolando falhas por produto."""
    today = today or date.today()
    ids = list(product_ids)
    summary = RecalculationSummary(selector=selector, requested=len(ids))
    configs = StageConfigRepo(db_path).map_by_name()
    deadline = clock() + timeout_seconds if timeout_seconds is not None else None

    for pid in ids:
        if deadline is not None and clock() >= deadline:
            summary.interrupted = True
            log_system_event("recalculo_interrompido", {
                "processados": summary.processed, "total": len(ids)
            }, level="warning")
            break
        try:
            recalculate_product(pid, db_path=db_path, today=today, configs=configs)
            summary.succeeded += 1
        except (AtelieError, sqlite3.Error) as e:
            summary.failures.append({
                "product_id": pid,
                "error_type": type(e).__name__,
                "message": str(e),
            })
            log_transaction("recalcular_produto", {"product_id": pid}, error=str(e))

    log_transaction("recalcular_lote", {"selector": selector}, result=summary.to_dict())
    return summary


def recalculate_collection(collection_id: int, db_path: str = DB_PATH, **kwargs) -> RecalculationSummary:
    ids = ProductRepo(db_path).ids_by_collection(collection_id)
    return recalculate_many(ids, db_path=db_path, selector=SELECTOR_COLLECTION, **kwargs)


def recalculate_all(db_path: str = DB_PATH, **kwargs) -> RecalculationSummary:
    ids = ProductRepo(db_path).ids_all()
    return recalculate_many(ids, db_path=db_path, selector=SELECTOR_ALL, **kwargs)


def _selector_id(kind: str, value: Any) -> int:
    # bool é subclasse de int; float truncaria o id
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidSelector(f"{kind} deve ser um inteiro: {value!r}")


def parse_selector(payload: Mapping[str, Any]) -> Tuple[str, Any]:
    """Valida que exatamente um seletor foi informado.

    Aceita `productId`, `collectionId` ou `recalculateAll: true`. Zero ou
    mais de um seletor → `InvalidSelector`, antes de qualquer trabalho.
    """
    if not isinstance(payload, Mapping):
        raise InvalidSelector("Corpo da requisição deve ser um objeto JSON")
    present = []
    if payload.get(SELECTOR_PRODUCT) not in (None, ""):
        present.append((SELECTOR_PRODUCT, payload[SELECTOR_PRODUCT]))
    if payload.get(SELECTOR_COLLECTION) not in (None, ""):
        present.append((SELECTOR_COLLECTION, payload[SELECTOR_COLLECTION]))
    if payload.get(SELECTOR_ALL) is True:
        present.append((SELECTOR_ALL, True))
    if len(present) != 1:
        raise InvalidSelector(
            "Parâmetros inválidos. Forneça exatamente um entre productId, collectionId ou recalculateAll"
        )
    kind, value = present[0]
    if kind != SELECTOR_ALL:
        value = _selector_id(kind, value)
    return kind, value


def run_recalculate(
    payload: Mapping[str, Any],
    db_path: str = DB_PATH,
    today: Optional[date] = None,
    timeout_seconds: Optional[float] = None,
) -> Dict[str, Any]:
    """Executa o recálculo conforme o seletor e devolve o corpo de resposta."""
    kind, value = parse_selector(payload)
    prepare_db(db_path)
    log_system_event("recalculo_start", {"selector": kind, "value": value})

    if kind == SELECTOR_PRODUCT:
        changed = recalculate_product(value, db_path=db_path, today=today)
        log_transaction("recalcular_produto", {"product_id": value}, result={"changed": changed})
        return {
            "success": True,
            "message": "Cronograma recalculado com sucesso",
            "productId": value,
            "stagesUpdated": changed,
        }

    if kind == SELECTOR_COLLECTION:
        summary = recalculate_collection(value, db_path=db_path, today=today,
                                         timeout_seconds=timeout_seconds)
        message = f"Recalculados {summary.succeeded} produtos da coleção"
    else:
        summary = recalculate_all(db_path=db_path, today=today, timeout_seconds=timeout_seconds)
        message = f"Recalculados {summary.succeeded} produtos"

    return {
        "success": True,
        "message": message,
        "productsRecalculated": summary.succeeded,
        "productsRequested": summary.requested,
        "failures": summary.failures,
        "interrupted": summary.interrupted,
    }
