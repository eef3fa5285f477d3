from datetime import date, timedelta

from atelie.config import STAGE_ORDER
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
from atelie.domain.models import Product, ProductionStage, ProductRecord
from atelie.domain.snapshot import build_snapshot

TODAY = date(2024, 3, 20)


def _snap(pid, statuses, expected=None, actual=None, stylist_id=None, stylist_name=None, stage_stylists=None):
    expected = expected or {}
    actual = actual or {}
    stage_stylists = stage_stylists or {}
    stages = [
        ProductionStage(
            id=pid * 10 + i,
            product_id=pid,
            stage_name=name,
            stage_order=i,
            status=status,
            expected_date=expected.get(i),
            actual_date=actual.get(i),
            stylist_id=stage_stylists.get(i),
        )
        for i, (name, status) in enumerate(zip(STAGE_ORDER, statuses), start=1)
    ]
    record = ProductRecord(product=Product(id=pid, code=f"P{pid}", stylist_id=stylist_id),
                           stylist_name=stylist_name)
    return build_snapshot(record, stages)


ACTIVE = ["concluida", "em_andamento", "pendente", "pendente", "pendente", "pendente"]
DONE = ["concluida"] * 6


def test_funnel_counts_per_stage_and_bucket():
    snaps = [
        _snap(1, ACTIVE),
        _snap(2, ["concluida", "atrasada", "pendente", "pendente", "pendente", "pendente"]),
        _snap(3, DONE),
        _snap(4, []),
    ]
    funnel = production_funnel(snaps)
    assert [r["stage_name"] for r in funnel] == STAGE_ORDER
    by_name = {r["stage_name"]: r for r in funnel}
    assert by_name["Briefing Recebido"]["completed"] == 3
    assert by_name["Modelagem Técnica"] == {
        "stage_name": "Modelagem Técnica",
        "pending": 0,
        "in_progress": 1,
        "completed": 1,
        "delayed": 1,
        "product_count": 3,
    }
    assert by_name["Aprovado"]["pending"] == 2


def test_funnel_appends_unknown_stage_names():
    snap = _snap(1, ACTIVE)
    snap.stages[2].stage_name = "Piloto Finalizado"
    names = [r["stage_name"] for r in production_funnel([snap])]
    assert names[-1] == "Piloto Finalizado"


def test_delivery_performance_buckets():
    late_final = _snap(1, DONE, expected={6: TODAY - timedelta(days=5)}, actual={6: TODAY - timedelta(days=2)})
    on_time_final = _snap(2, DONE, expected={6: TODAY - timedelta(days=5)}, actual={6: TODAY - timedelta(days=6)})
    no_dates_final = _snap(3, DONE)
    critical = _snap(4, ACTIVE, expected={2: TODAY - timedelta(days=1)})
    urgent = _snap(5, ACTIVE, expected={2: TODAY + timedelta(days=1)})
    warning = _snap(6, ACTIVE, expected={2: TODAY + timedelta(days=3)})
    relaxed = _snap(7, ACTIVE, expected={2: TODAY + timedelta(days=20)})
    no_stages = _snap(8, [])

    stats = delivery_performance(
        [late_final, on_time_final, no_dates_final, critical, urgent, warning, relaxed, no_stages], TODAY
    )
    assert stats == {"onTime": 3, "delayed": 2, "urgent": 2, "total": 7}


def test_approval_rates_never_report_rejections():
    approved = _snap(1, DONE)
    waiting = _snap(2, ["concluida", "concluida", "concluida", "em_andamento", "pendente", "pendente"])
    early = _snap(3, ACTIVE)
    rates = approval_rates([approved, waiting, early])
    assert rates["approved"] == 1
    # "Envio para Aprovação" pendente também conta como aguardando
    assert rates["pending"] == 2
    assert rates["rejected"] == 0
    assert rates["approval_rate"] == 100.0


def test_approval_rate_zero_without_decisions():
    assert approval_rates([])["approval_rate"] == 0.0


def test_stylist_performance_attribution_and_rate():
    a = _snap(
        1,
        ["concluida", "concluida", "em_andamento", "pendente", "pendente", "pendente"],
        expected={1: date(2024, 3, 5), 2: date(2024, 3, 10)},
        actual={1: date(2024, 3, 4), 2: date(2024, 3, 12)},
        stylist_id=1,
        stylist_name="Bia",
        stage_stylists={3: 2},
    )
    perf = stylist_performance([a], TODAY, {1: "Bia", 2: "Ana", 3: "Caio"})
    by_name = {r["stylist_name"]: r for r in perf}

    assert [r["stylist_name"] for r in perf] == ["Ana", "Bia", "Caio"]
    assert by_name["Ana"]["in_progress"] == 1
    assert by_name["Bia"]["in_progress"] == 0
    assert by_name["Bia"]["completed_this_month"] == 2
    assert by_name["Bia"]["on_time_rate"] == 0.5
    assert by_name["Caio"]["on_time_rate"] is None


def test_top_clients_ranking():
    clients = [{"id": 1, "name": "Zeta"}, {"id": 2, "name": "Alfa"}, {"id": 3, "name": "Beta"}]
    collections = [
        {"id": 10, "client_id": 1}, {"id": 11, "client_id": 1},
        {"id": 12, "client_id": 2}, {"id": 13, "client_id": 3},
        {"id": 14, "client_id": None},
    ]
    ranked = top_clients(clients, collections)
    assert [r["client_name"] for r in ranked] == ["Zeta", "Alfa", "Beta"]
    assert ranked[0]["collections"] == 2
    assert len(top_clients(clients, collections, limit=1)) == 1


def test_kpis_prototyping_and_timeline():
    snaps = [
        _snap(1, ["concluida", "concluida", "em_andamento", "pendente", "pendente", "pendente"],
              expected={3: TODAY - timedelta(days=1)}),
        _snap(2, ["concluida", "concluida", "em_andamento", "pendente", "pendente", "pendente"],
              expected={3: TODAY + timedelta(days=4)}),
        _snap(3, ACTIVE, expected={2: TODAY + timedelta(days=1)}),
        _snap(4, DONE),
    ]
    assert kpi_summary(snaps, TODAY) == {"total": 4, "in_progress": 3, "overdue": 1, "completed": 1}
    assert prototyping_status(snaps, TODAY) == {"total": 2, "overdue": 1, "on_time": 1}

    timeline = schedule_timeline(snaps, TODAY)
    assert [r["code"] for r in timeline] == ["P3", "P2"]
    assert timeline[0]["days_remaining"] == 1
