from atelie.config import STAGE_ORDER
from atelie.domain.models import Product, ProductFile, ProductionStage, ProductRecord
from atelie.domain.snapshot import build_snapshot, build_snapshots, file_type_counts, products_by_stage


def _record(pid, code, **names):
    return ProductRecord(product=Product(id=pid, code=code, name=f"Peça {code}"), **names)


def _stages(pid, statuses):
    return [
        ProductionStage(id=pid * 10 + i, product_id=pid, stage_name=name, stage_order=i, status=status)
        for i, (name, status) in enumerate(zip(STAGE_ORDER, statuses), start=1)
    ]


def test_product_without_stages_has_no_current_stage():
    snap = build_snapshot(_record(1, "P1"), [])
    assert snap.current_stage is None
    assert snap.has_stage_data is False
    assert snap.stages == []
    assert snap.is_complete is False


def test_missing_join_names_get_placeholders():
    snap = build_snapshot(_record(1, "P1", collection_name=None, client_name="  ", stylist_name=None), [])
    assert snap.collection_name == "Sem coleção"
    assert snap.client_name == "Sem cliente"
    assert snap.stylist_name == "Sem estilista"


def test_join_names_are_kept():
    snap = build_snapshot(_record(1, "P1", collection_name="Verão 25", client_name="Loja A",
                                  stylist_name="Ana"), [])
    assert (snap.collection_name, snap.client_name, snap.stylist_name) == ("Verão 25", "Loja A", "Ana")


def test_build_snapshots_groups_stages_and_files():
    records = [_record(1, "P1"), _record(2, "P2"), _record(3, "P3")]
    stages = (
        _stages(1, ["concluida", "em_andamento", "pendente", "pendente", "pendente", "pendente"])
        + _stages(2, ["concluida"] * 6)
    )
    files = [
        ProductFile(id=1, product_id=1, file_name="a.png", file_type="image/png"),
        ProductFile(id=2, product_id=1, file_name="b.png", file_type="image/png"),
        ProductFile(id=3, product_id=1, file_name="ficha.pdf", file_type=None),
    ]
    snaps = build_snapshots(records, list(reversed(stages)), files)

    assert [s.code for s in snaps] == ["P1", "P2", "P3"]
    assert snaps[0].current_stage.stage_name == "Modelagem Técnica"
    assert [s.stage_order for s in snaps[0].stages] == [1, 2, 3, 4, 5, 6]
    assert snaps[1].is_complete
    assert snaps[1].current_stage.stage_name == "Mostruário e Entregue"
    assert snaps[2].current_stage is None
    assert file_type_counts(snaps[0]) == {"image/png": 2, "desconhecido": 1}
    assert file_type_counts(snaps[2]) == {}


def test_products_by_stage_uses_current_stage():
    records = [_record(1, "P1"), _record(2, "P2")]
    stages = (
        _stages(1, ["concluida", "em_andamento", "pendente", "pendente", "pendente", "pendente"])
        + _stages(2, ["em_andamento"] + ["pendente"] * 5)
    )
    snaps = build_snapshots(records, stages)
    assert [s.code for s in products_by_stage(snaps, "Modelagem Técnica")] == ["P1"]
    assert [s.code for s in products_by_stage(snaps, "Briefing Recebido")] == ["P2"]
    assert products_by_stage(snaps, "Aprovado") == []
