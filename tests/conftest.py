from datetime import date
from pathlib import Path

import pytest

from atelie.infra.db import connect
from atelie.infra.repositories import ClientRepo, CollectionRepo, ProductRepo, StylistRepo
from atelie.usecases.cronograma import prepare_db
from atelie.usecases.etapas import ensure_pipeline

TODAY = date(2024, 1, 10)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "atelie_test.sqlite")
    prepare_db(path)
    return path


def seed_product(db_path, code, priority=None, collection=None, client=None, stylist=None,
                 pipeline=True, today=TODAY):
    """Cria um produto (e, por padrão, o pipeline agendado a partir de `today`)."""
    client_id = ClientRepo(db_path).insert(client) if client else None
    stylist_id = StylistRepo(db_path).insert(stylist) if stylist else None
    collection_id = (
        CollectionRepo(db_path).insert(collection, client_id=client_id, stylist_id=stylist_id)
        if collection else None
    )
    (pid,) = ProductRepo(db_path).upsert([{
        "code": code,
        "name": f"Peça {code}",
        "priority": priority,
        "collection_id": collection_id,
        "client_id": client_id,
        "stylist_id": stylist_id,
    }])
    if pipeline:
        ensure_pipeline(pid, db_path=db_path, today=today)
    return pid


def stage_rows(db_path, product_id):
    with connect(db_path) as c:
        return [
            dict(r) for r in c.execute(
                "SELECT id, stage_name, stage_order, status, expected_date, actual_date, version "
                "FROM production_stage WHERE product_id = ? ORDER BY stage_order",
                (product_id,),
            ).fetchall()
        ]


def drop_stage_config(db_path, stage_name):
    """Remove a configuração de uma etapa (simula configuração ausente)."""
    with connect(db_path) as c:
        c.execute("DELETE FROM stage_config WHERE stage_name = ?", (stage_name,))
