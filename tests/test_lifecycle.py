from datetime import date

import pytest

from atelie.config import STAGE_ORDER
from atelie.domain.errors import InvalidStatus, NoNextStage, StageNotFound
from atelie.domain.lifecycle import (
    active_count,
    current_stage,
    initial_pipeline,
    plan_advance,
    plan_move,
    plan_status_update,
)
from atelie.domain.models import ProductionStage


def _stages(statuses):
    return [
        ProductionStage(id=i, product_id=1, stage_name=name, stage_order=i, status=status)
        for i, (name, status) in enumerate(zip(STAGE_ORDER, statuses), start=1)
    ]


def _apply(stages, changed):
    by_id = {s.id: s for s in changed}
    return [by_id.get(s.id, s) for s in stages]


def test_initial_pipeline_has_one_active_stage():
    stages = initial_pipeline(42)
    assert [s.stage_name for s in stages] == STAGE_ORDER
    assert [s.stage_order for s in stages] == [1, 2, 3, 4, 5, 6]
    assert stages[0].status == "em_andamento"
    assert active_count(stages) == 1
    assert all(s.product_id == 42 for s in stages)


def test_current_stage_rules():
    assert current_stage([]) is None
    stages = _stages(["concluida", "pendente", "pendente", "pendente", "pendente", "pendente"])
    assert current_stage(stages).stage_name == "Modelagem Técnica"
    done = _stages(["concluida"] * 6)
    assert current_stage(done).stage_name == "Mostruário e Entregue"


def test_current_stage_ignores_input_order():
    stages = list(reversed(_stages(["concluida", "concluida", "em_andamento", "pendente", "pendente", "pendente"])))
    assert current_stage(stages).stage_name == "Prototipagem"


def test_advance_completes_current_and_starts_next():
    stages = _stages(["concluida", "em_andamento", "pendente", "pendente", "pendente", "pendente"])
    done, started = plan_advance(stages, 1, date(2024, 2, 1))
    assert (done.stage_name, done.status, done.actual_date) == ("Modelagem Técnica", "concluida", date(2024, 2, 1))
    assert (started.stage_name, started.status) == ("Prototipagem", "em_andamento")
    after = _apply(stages, [done, started])
    assert active_count(after) == 1
    # entrada não é alterada
    assert stages[1].status == "em_andamento"


def test_advance_on_last_stage_raises_no_next_stage():
    stages = _stages(["concluida"] * 5 + ["em_andamento"])
    with pytest.raises(NoNextStage) as exc:
        plan_advance(stages, 1, date(2024, 2, 1))
    assert exc.value.stage_name == "Mostruário e Entregue"


def test_advance_without_stages_raises_stage_not_found():
    with pytest.raises(StageNotFound):
        plan_advance([], 7, date(2024, 2, 1))


def test_move_prototipagem_to_aprovado_is_allowed():
    stages = _stages(["concluida", "concluida", "em_andamento", "pendente", "pendente", "pendente"])
    changed = plan_move(stages, 1, "Aprovado")
    after = {s.stage_name: s for s in _apply(stages, changed)}
    assert after["Aprovado"].status == "em_andamento"
    assert after["Prototipagem"].status == "concluida"
    assert after["Prototipagem"].actual_date is None
    assert after["Envio para Aprovação"].status == "concluida"
    assert after["Mostruário e Entregue"].status == "pendente"
    assert active_count(after.values()) == 1


def test_move_backwards_reopens_later_stages():
    stages = _stages(["concluida", "concluida", "concluida", "em_andamento", "pendente", "pendente"])
    for s in stages[:3]:
        s.actual_date = date(2024, 1, s.stage_order)
    changed = plan_move(stages, 1, "Modelagem Técnica")
    after = {s.stage_name: s for s in _apply(stages, changed)}
    assert after["Briefing Recebido"].status == "concluida"
    assert after["Briefing Recebido"].actual_date == date(2024, 1, 1)
    assert after["Modelagem Técnica"].status == "em_andamento"
    assert after["Modelagem Técnica"].actual_date is None
    assert after["Prototipagem"].status == "pendente"
    assert after["Prototipagem"].actual_date is None
    assert active_count(after.values()) == 1


def test_move_to_current_stage_changes_nothing():
    stages = _stages(["concluida", "em_andamento", "pendente", "pendente", "pendente", "pendente"])
    assert plan_move(stages, 1, "Modelagem Técnica") == []


def test_move_to_unknown_stage():
    with pytest.raises(StageNotFound):
        plan_move(_stages(["em_andamento"] + ["pendente"] * 5), 1, "Costura")


def test_status_update_validates_status():
    st = _stages(["em_andamento"])[0]
    with pytest.raises(InvalidStatus):
        plan_status_update(st, "cancelada")
    late = plan_status_update(st, "atrasada")
    assert late.status == "atrasada" and late.actual_date is None
    done = plan_status_update(st, "concluida", date(2024, 3, 3))
    assert done.actual_date == date(2024, 3, 3)
