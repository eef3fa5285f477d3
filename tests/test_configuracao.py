import pytest

from atelie.config import STAGE_ORDER
from atelie.domain.errors import ConfigurationMissing, InvalidConfigValue
from atelie.infra.repositories import StageConfigRepo
from atelie.usecases.configuracao import show_stage_config, update_stage_config


def test_defaults_are_seeded_in_pipeline_order(db_path):
    rows = show_stage_config(db_path)
    assert [r["etapa"] for r in rows] == STAGE_ORDER
    assert [r["duracao_dias"] for r in rows] == [2, 5, 7, 3, 2, 1]
    assert all(r["multiplicador"] == 1.0 for r in rows)
    assert [r["ordem"] for r in rows] == [1, 2, 3, 4, 5, 6]


def test_update_only_given_fields(db_path):
    out = update_stage_config("Prototipagem", priority_multiplier=1.5, db_path=db_path)
    assert out == {"etapa": "Prototipagem", "duracao_dias": 7, "multiplicador": 1.5}
    out = update_stage_config("Prototipagem", duration_days=10, db_path=db_path)
    assert out == {"etapa": "Prototipagem", "duracao_dias": 10, "multiplicador": 1.5}


@pytest.mark.parametrize(
    "duration, multiplier",
    [(0, None), (31, None), (2.5, None), (None, 0.05), (None, 5.5), (None, None)],
)
def test_invalid_values_are_rejected_before_persisting(db_path, duration, multiplier):
    with pytest.raises(InvalidConfigValue):
        update_stage_config("Aprovado", duration, multiplier, db_path=db_path)
    cfg = StageConfigRepo(db_path).get("Aprovado")
    assert (cfg.duration_days, cfg.priority_multiplier) == (2, 1.0)


@pytest.mark.parametrize("duration, multiplier", [(1, 0.1), (30, 5.0)])
def test_limits_are_inclusive(db_path, duration, multiplier):
    out = update_stage_config("Aprovado", duration, multiplier, db_path=db_path)
    assert (out["duracao_dias"], out["multiplicador"]) == (duration, multiplier)


def test_unknown_stage_is_configuration_missing(db_path):
    with pytest.raises(ConfigurationMissing):
        update_stage_config("Bordado", duration_days=3, db_path=db_path)


def test_legacy_stage_rows_are_listed_last(db_path):
    StageConfigRepo(db_path).upsert([{"stage_name": "Piloto Finalizado", "duration_days": 4,
                                      "priority_multiplier": 1.0}])
    rows = show_stage_config(db_path)
    assert rows[-1]["etapa"] == "Piloto Finalizado"
    assert rows[-1]["ordem"] == 999
