# atelie/usecases/configuracao.py
"""
UC: consultar e editar a configuração de duração/multiplicador das etapas.

Os valores são validados antes de persistir (duração 1–30 dias,
multiplicador 0.1–5.0). A edição não recalcula cronogramas: depois de
mudar a configuração, use o recálculo (`recalcular --todos`) para aplicar
as novas durações aos produtos existentes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from atelie.config import (
    DB_PATH,
    DURATION_MAX,
    DURATION_MIN,
    MULTIPLIER_MAX,
    MULTIPLIER_MIN,
    STAGE_ORDER,
)
from atelie.domain.errors import ConfigurationMissing, InvalidConfigValue
from atelie.infra.logger import log_database_operation, log_transaction
from atelie.infra.repositories import StageConfigRepo
from atelie.usecases.cronograma import prepare_db


def stage_position(stage_name: str) -> int:
    """Posição da etapa no pipeline (999 para nomes fora do pipeline)."""
    try:
        return STAGE_ORDER.index(stage_name) + 1
    except ValueError:
        return 999


def validate_config_values(duration_days: Optional[int] = None, priority_multiplier: Optional[float] = None) -> None:
    if duration_days is not None:
        if isinstance(duration_days, bool) or int(duration_days) != duration_days:
            raise InvalidConfigValue(f"Duração deve ser um número inteiro de dias: {duration_days!r}")
        if not (DURATION_MIN <= duration_days <= DURATION_MAX):
            raise InvalidConfigValue(
                f"Duração deve estar entre {DURATION_MIN} e {DURATION_MAX} dias (recebido {duration_days})"
            )
    if priority_multiplier is not None:
        if not (MULTIPLIER_MIN <= float(priority_multiplier) <= MULTIPLIER_MAX):
            raise InvalidConfigValue(
                f"Multiplicador deve estar entre {MULTIPLIER_MIN} e {MULTIPLIER_MAX} (recebido {priority_multiplier})"
            )


def show_stage_config(db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Configuração efetiva, ordenada pela posição da etapa no pipeline."""
    prepare_db(db_path)
    configs = StageConfigRepo(db_path).get_all()
    configs.sort(key=lambda c: (stage_position(c.stage_name), c.stage_name))
    return [
        {
            "ordem": stage_position(c.stage_name),
            "etapa": c.stage_name,
            "duracao_dias": c.duration_days,
            "multiplicador": c.priority_multiplier,
        }
        for c in configs
    ]


def update_stage_config(
    stage_name: str,
    duration_days: Optional[int] = None,
    priority_multiplier: Optional[float] = None,
    db_path: str = DB_PATH,
) -> Dict[str, Any]:
    """Atualiza a configuração de uma etapa já semeada."""
    data = {"stage_name": stage_name, "duration_days": duration_days,
            "priority_multiplier": priority_multiplier}
    try:
        if duration_days is None and priority_multiplier is None:
            raise InvalidConfigValue("Nada a alterar. Informe duração e/ou multiplicador.")
        validate_config_values(duration_days, priority_multiplier)
        prepare_db(db_path)
        repo = StageConfigRepo(db_path)
        if repo.update(stage_name, duration_days, priority_multiplier) == 0:
            raise ConfigurationMissing(stage_name)
    except (InvalidConfigValue, ConfigurationMissing) as e:
        log_transaction("editar_config", data, error=str(e))
        raise

    log_database_operation("stage_config", "UPDATE", 1, stage_name=stage_name)
    cfg = repo.get(stage_name)
    log_transaction("editar_config", data, result="success")
    return {
        "etapa": cfg.stage_name,
        "duracao_dias": cfg.duration_days,
        "multiplicador": cfg.priority_multiplier,
    }
