# atelie/usecases/painel.py
"""
Painéis de produção: Kanban, alertas, agregações e visões do modo TV.

Cada chamada reconstrói o modelo de leitura a partir do banco
(`load_snapshots`) e aplica funções puras sobre ele; nada fica em cache
entre chamadas.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from atelie.config import DB_PATH, DEFAULTS, STAGE_ORDER, STATUS_IN_PROGRESS
from atelie.domain.aggregations import (
    approval_rates,
    delivery_performance,
    kpi_summary,
    production_funnel,
    prototyping_status,
    schedule_timeline,
    stylist_performance,
    top_clients,
)
from atelie.domain.alerts import SEVERITY_LABELS, is_overdue, urgent_alerts
from atelie.domain.models import ProductWithStage, iso
from atelie.domain.snapshot import build_snapshots, file_type_counts, products_by_stage
from atelie.infra.logger import log_database_operation, log_system_event, system_logger
from atelie.infra.repositories import (
    ClientRepo,
    CollectionRepo,
    FileRepo,
    ProductRepo,
    StageRepo,
    StylistRepo,
)
from atelie.usecases.cronograma import prepare_db


def load_snapshots(db_path: str = DB_PATH) -> List[ProductWithStage]:
    """Lê produtos, etapas e arquivos e monta um snapshot por produto."""
    prepare_db(db_path)
    records = ProductRepo(db_path).list_records()
    stages = StageRepo(db_path).list_all()
    files = FileRepo(db_path).get_all()
    log_database_operation("product", "SELECT_ALL", len(records))
    log_database_operation("production_stage", "SELECT_ALL", len(stages))
    return build_snapshots(records, stages, files)


def _product_row(p: ProductWithStage, today: date) -> Dict[str, Any]:
    st = p.current_stage
    return {
        "id": p.id,
        "codigo": p.code,
        "nome": p.name or "",
        "colecao": p.collection_name,
        "cliente": p.client_name,
        "prioridade": p.priority or "",
        "etapa": st.stage_name if st else "",
        "status": st.status if st else "",
        "previsto": iso(st.expected_date) if st else None,
        "atrasado": is_overdue(p, today),
        "arquivos": len(p.files),
    }


def kanban_board(db_path: str = DB_PATH, today: Optional[date] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Colunas do Kanban: etapa → produtos cuja etapa atual é aquela."""
    today = today or date.today()
    snaps = load_snapshots(db_path)
    return {
        name: [_product_row(p, today) for p in products_by_stage(snaps, name)]
        for name in STAGE_ORDER
    }


def product_detail(product_id: int, db_path: str = DB_PATH, today: Optional[date] = None) -> Dict[str, Any]:
    """Snapshot de um produto com o histórico completo de etapas."""
    today = today or date.today()
    snap = next((s for s in load_snapshots(db_path) if s.id == product_id), None)
    if snap is None:
        ProductRepo(db_path).get(product_id)  # levanta ProductNotFound
    out = _product_row(snap, today)
    out["arquivos_por_tipo"] = file_type_counts(snap)
    out["etapas"] = [
        {
            "stage_id": s.id,
            "ordem": s.stage_order,
            "etapa": s.stage_name,
            "status": s.status,
            "previsto": iso(s.expected_date),
            "real": iso(s.actual_date),
            "responsavel": s.responsible_party,
        }
        for s in snap.stages
    ]
    return out


def alerts_report(db_path: str = DB_PATH, today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    alerts = urgent_alerts(load_snapshots(db_path), today)
    system_logger.info(f"PAINEL_ALERTAS: {len(alerts)} alertas")
    return [
        {
            "codigo": a.product_code,
            "nome": a.product_name or "",
            "colecao": a.collection_name,
            "cliente": a.client_name,
            "etapa": a.current_stage,
            "previsto": iso(a.expected_date),
            "dias_restantes": a.days_remaining,
            "severidade": SEVERITY_LABELS[a.severity],
        }
        for a in alerts
    ]


def dashboard(db_path: str = DB_PATH, today: Optional[date] = None) -> Dict[str, Any]:
    """Todas as agregações do painel, recalculadas do zero."""
    today = today or date.today()
    snaps = load_snapshots(db_path)
    stylists = StylistRepo(db_path).names_by_id()
    clients = ClientRepo(db_path).get_all()
    collections = CollectionRepo(db_path).get_all()

    out = {
        "kpis": kpi_summary(snaps, today),
        "funil": production_funnel(snaps),
        "entregas": delivery_performance(snaps, today),
        "aprovacao": approval_rates(snaps),
        "estilistas": stylist_performance(snaps, today, stylists),
        "clientes": top_clients(clients, collections),
        "prototipagem": prototyping_status(snaps, today),
        "cronograma": schedule_timeline(snaps, today),
        "alertas": urgent_alerts(snaps, today),
    }
    log_system_event("painel_carregado", {"produtos": len(snaps), "alertas": len(out["alertas"])})
    return out


# ----------------------
# Modo TV
# ----------------------

def tv_overview(snaps: List[ProductWithStage], today: date,
                per_stage: int = DEFAULTS.tv_products_per_stage) -> Dict[str, Any]:
    """Visão geral: totais e, por etapa, contagem, atrasados e primeiros produtos."""
    stages = []
    for name in STAGE_ORDER:
        in_stage = products_by_stage(snaps, name)
        stages.append({
            "etapa": name,
            "total": len(in_stage),
            "atrasados": sum(1 for p in in_stage if is_overdue(p, today)),
            "produtos": [
                {"codigo": p.code, "nome": p.name or "", "colecao": p.collection_name,
                 "atrasado": is_overdue(p, today)}
                for p in in_stage[:per_stage]
            ],
            "restantes": max(0, len(in_stage) - per_stage),
        })
    return {"kpis": kpi_summary(snaps, today), "etapas": stages}


def tv_overdue(snaps: List[ProductWithStage], today: date) -> List[Dict[str, Any]]:
    return [_product_row(p, today) for p in snaps if is_overdue(p, today)]


def tv_in_progress(snaps: List[ProductWithStage], today: date) -> List[Dict[str, Any]]:
    return [
        _product_row(p, today) for p in snaps
        if p.current_stage is not None and p.current_stage.status == STATUS_IN_PROGRESS
    ]


TV_VIEWS: List[Tuple[str, Callable[[List[ProductWithStage], date], Any]]] = [
    ("Visão Geral", tv_overview),
    ("Produtos Atrasados", tv_overdue),
    ("Em Andamento", tv_in_progress),
]


def next_view(index: int) -> int:
    """Índice da próxima visão na rotação."""
    return (index + 1) % len(TV_VIEWS)
