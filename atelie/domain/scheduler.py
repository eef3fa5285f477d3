"""
Stage scheduling formulas.

Given the stage configuration (default duration and priority multiplier)
and a product's priority, these functions compute the expected completion
date of each production stage.

Policy decisions:

* Offsets are counted in calendar days, for every stage of the pipeline.
* The stage multiplier only weights products whose priority amplifies the
  schedule (``alta`` and ``urgente``); ``baixa``/``media`` use the plain
  duration.
* ``round`` is half-up and the offset is never shorter than one day.

All functions are pure: they depend solely on their inputs and do not
touch the database. Persisting the result is the caller's job.
"""

from __future__ import annotations

from datetime import date, timedelta
from math import floor
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from atelie.config import AMPLIFYING_PRIORITIES, STATUS_DONE
from atelie.domain.errors import ConfigurationMissing
from atelie.domain.models import ProductionStage, StageConfig


def config_for(configs: Mapping[str, StageConfig], stage_name: str) -> StageConfig:
    """Return the configuration row of ``stage_name`` or raise ``ConfigurationMissing``."""
    cfg = configs.get(stage_name)
    if cfg is None:
        raise ConfigurationMissing(stage_name)
    return cfg


def priority_weight(config: StageConfig, priority: Optional[str]) -> float:
    """Return the factor applied to the stage duration for a given priority."""
    if priority and priority.strip().lower() in AMPLIFYING_PRIORITIES:
        return float(config.priority_multiplier)
    return 1.0


def scheduled_days(config: StageConfig, priority: Optional[str]) -> int:
    """Number of calendar days allotted to the stage.

    Computes ``round(duration_days * weight)`` rounding halves up (so 2.5
    becomes 3, unlike Python's banker's rounding), with a floor of one day.
    """
    raw = float(config.duration_days) * priority_weight(config, priority)
    return max(1, int(floor(raw + 0.5)))


def expected_date_for(base_date: date, config: StageConfig, priority: Optional[str]) -> date:
    """Compute the expected completion date of a stage starting at ``base_date``."""
    return base_date + timedelta(days=scheduled_days(config, priority))


def base_date_for(previous: Optional[ProductionStage], today: date) -> date:
    """Pick the date a stage is scheduled from.

    The first pipeline stage starts today. Any other stage starts at the
    preceding stage's ``actual_date`` if it was completed, else at its
    ``expected_date``. A preceding stage with neither date falls back to
    today.
    """
    if previous is None:
        return today
    return previous.actual_date or previous.expected_date or today


def schedule_pipeline(
    stages: Iterable[ProductionStage],
    configs: Mapping[str, StageConfig],
    priority: Optional[str],
    today: date,
) -> List[Tuple[ProductionStage, date]]:
    """Recompute expected dates for every stage that is not completed.

    Completed stages keep their historical ``expected_date`` and seed the
    next stage with their ``actual_date``. The configuration of every stage
    that needs a date is checked up front, so a missing row raises
    ``ConfigurationMissing`` before any date is produced.

    Returns a list of ``(stage, new_expected_date)`` in pipeline order.
    The input stages are not modified.
    """
    ordered = sorted(stages, key=lambda s: s.stage_order)
    for st in ordered:
        if st.status != STATUS_DONE:
            config_for(configs, st.stage_name)

    out: List[Tuple[ProductionStage, date]] = []
    previous: Optional[ProductionStage] = None
    for st in ordered:
        if st.status == STATUS_DONE:
            previous = st
            continue
        base = base_date_for(previous, today)
        new_date = expected_date_for(base, configs[st.stage_name], priority)
        out.append((st, new_date))
        # o próximo estágio encadeia na data recém calculada
        previous = ProductionStage(
            id=st.id,
            product_id=st.product_id,
            stage_name=st.stage_name,
            stage_order=st.stage_order,
            status=st.status,
            expected_date=new_date,
            actual_date=st.actual_date,
        )
    return out


def configs_by_name(rows: Iterable[StageConfig]) -> Dict[str, StageConfig]:
    return {c.stage_name: c for c in rows}
