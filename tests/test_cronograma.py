from datetime import date

import pytest

from atelie.domain.errors import (
    ConfigurationMissing,
    InvalidSelector,
    PartialRecalculationFailure,
    ProductNotFound,
)
from atelie.infra.db import connect
from atelie.infra.repositories import StageConfigRepo
from atelie.usecases.cronograma import (
    parse_selector,
    recalculate_all,
    recalculate_collection,
    recalculate_many,
    recalculate_product,
    run_recalculate,
)
from atelie.usecases.etapas import advance_product

from conftest import TODAY, drop_stage_config, seed_product, stage_rows


def _rename_stage(db_path, product_id, stage_order, new_name):
    with connect(db_path) as c:
        c.execute(
            "UPDATE production_stage SET stage_name = ? WHERE product_id = ? AND stage_order = ?",
            (new_name, product_id, stage_order),
        )


def test_new_pipeline_gets_expected_dates(db_path):
    pid = seed_product(db_path, "P1")
    rows = stage_rows(db_path, pid)
    assert [r["expected_date"] for r in rows] == [
        "2024-01-12", "2024-01-17", "2024-01-24", "2024-01-27", "2024-01-29", "2024-01-30",
    ]
    assert [r["status"] for r in rows] == ["em_andamento"] + ["pendente"] * 5


def test_recalculate_is_idempotent(db_path):
    pid = seed_product(db_path, "P1", priority="alta")
    StageConfigRepo(db_path).update("Prototipagem", priority_multiplier=2.0)

    assert recalculate_product(pid, db_path=db_path, today=TODAY) > 0
    first = stage_rows(db_path, pid)
    assert recalculate_product(pid, db_path=db_path, today=TODAY) == 0
    second = stage_rows(db_path, pid)
    assert [r["expected_date"] for r in first] == [r["expected_date"] for r in second]
    # nenhuma escrita na segunda passada
    assert [r["version"] for r in first] == [r["version"] for r in second]


def test_recalculate_chains_from_actual_completion(db_path):
    pid = seed_product(db_path, "P1")
    advance_product(pid, db_path=db_path, today=date(2024, 1, 10))
    recalculate_product(pid, db_path=db_path, today=date(2024, 2, 1))
    rows = stage_rows(db_path, pid)
    assert rows[0]["status"] == "concluida"
    assert rows[0]["actual_date"] == "2024-01-10"
    # data prevista histórica preservada
    assert rows[0]["expected_date"] == "2024-01-12"
    assert rows[1]["expected_date"] == "2024-01-15"


def test_multiplier_ignored_for_low_priority(db_path):
    StageConfigRepo(db_path).update("Briefing Recebido", priority_multiplier=3.0)
    low = seed_product(db_path, "BAIXA", priority="baixa")
    high = seed_product(db_path, "URG", priority="urgente")
    assert stage_rows(db_path, low)[0]["expected_date"] == "2024-01-12"
    assert stage_rows(db_path, high)[0]["expected_date"] == "2024-01-16"


def test_recalculate_missing_config_writes_nothing(db_path):
    pid = seed_product(db_path, "P1")
    before = stage_rows(db_path, pid)
    drop_stage_config(db_path, "Aprovado")
    with pytest.raises(ConfigurationMissing):
        recalculate_product(pid, db_path=db_path, today=date(2024, 5, 1))
    assert stage_rows(db_path, pid) == before


def test_recalculate_unknown_product(db_path):
    with pytest.raises(ProductNotFound):
        recalculate_product(999, db_path=db_path, today=TODAY)


def test_bulk_recalculation_isolates_failures(db_path):
    ids = [seed_product(db_path, f"P{i}") for i in range(1, 11)]
    assert ids[6] == 7
    _rename_stage(db_path, 7, 3, "Piloto Finalizado")

    summary = recalculate_all(db_path=db_path, today=date(2024, 2, 1))

    assert summary.requested == 10
    assert summary.succeeded == 9
    assert len(summary.failures) == 1
    failure = summary.failures[0]
    assert failure["product_id"] == 7
    assert failure["error_type"] == "ConfigurationMissing"
    assert "Piloto Finalizado" in failure["message"]
    assert summary.partial_failure and not summary.interrupted
    assert stage_rows(db_path, 1)[0]["expected_date"] == "2024-02-03"

    with pytest.raises(PartialRecalculationFailure):
        summary.raise_for_failures()


def test_recalculate_collection_only_touches_its_products(db_path):
    a = seed_product(db_path, "A", collection="Verão")
    b = seed_product(db_path, "B")
    with connect(db_path) as c:
        collection_id = c.execute("SELECT collection_id FROM product WHERE id = ?", (a,)).fetchone()[0]

    summary = recalculate_collection(collection_id, db_path=db_path, today=date(2024, 2, 1))
    assert summary.succeeded == 1
    assert stage_rows(db_path, a)[0]["expected_date"] == "2024-02-03"
    assert stage_rows(db_path, b)[0]["expected_date"] == "2024-01-12"


def test_timeout_interrupts_between_products(db_path):
    ids = [seed_product(db_path, f"P{i}") for i in range(1, 6)]
    ticks = iter([0.0, 0.5, 1.5, 2.5, 3.5, 4.5, 5.5])

    summary = recalculate_many(ids, db_path=db_path, today=date(2024, 2, 1),
                               timeout_seconds=2.0, clock=lambda: next(ticks))

    assert summary.interrupted
    assert summary.succeeded == 2
    assert summary.requested == 5
    assert stage_rows(db_path, ids[2])[0]["expected_date"] == "2024-01-12"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"productId": 1, "collectionId": 2},
        {"productId": 1, "recalculateAll": True},
        {"recalculateAll": False},
        {"recalculateAll": "true"},
        {"productId": "abc"},
        {"productId": True},
        {"productId": False},
        {"productId": 1.9},
        {"collectionId": 2.5},
        {"productId": "-3"},
        {"collectionId": [1]},
        [1, 2],
    ],
)
def test_parse_selector_rejects_invalid(payload):
    with pytest.raises(InvalidSelector):
        parse_selector(payload)


def test_parse_selector_accepts_exactly_one():
    assert parse_selector({"productId": "3"}) == ("productId", 3)
    assert parse_selector({"collectionId": 4, "productId": None}) == ("collectionId", 4)
    assert parse_selector({"recalculateAll": True}) == ("recalculateAll", True)


def test_run_recalculate_response_shapes(db_path):
    pid = seed_product(db_path, "P1")
    single = run_recalculate({"productId": pid}, db_path=db_path, today=date(2024, 2, 1))
    assert single["success"] is True
    assert single["productId"] == pid
    assert single["stagesUpdated"] == 6

    bulk = run_recalculate({"recalculateAll": True}, db_path=db_path, today=date(2024, 2, 1))
    assert bulk["success"] is True
    assert bulk["productsRecalculated"] == 1
    assert bulk["failures"] == []
    assert bulk["interrupted"] is False
