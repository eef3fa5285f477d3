from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from atelie.adapters.cli import app
from atelie.infra.db import connect

from conftest import seed_product, stage_rows

runner = CliRunner()


def test_cli_migrate_and_config_show(tmp_path: Path):
    db_path = tmp_path / "atelie_test.sqlite"
    result = runner.invoke(app, ["migrate", "--db", str(db_path)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["config", "show", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert "Prototipagem" in result.stdout
    assert "Mostruário e Entregue" in result.stdout


def test_cli_config_set_and_validation(db_path):
    result = runner.invoke(app, ["config", "set", "Prototipagem", "--duracao", "9", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "Configuração atualizada" in result.stdout

    result = runner.invoke(app, ["config", "set", "Prototipagem", "--duracao", "45", "--db", db_path])
    assert result.exit_code == 1
    assert "entre 1 e 30" in result.stdout

    result = runner.invoke(app, ["config", "set", "Prototipagem", "--db", db_path])
    assert result.exit_code == 1


def test_cli_import_and_kanban(db_path, tmp_path: Path):
    path = tmp_path / "produtos.xlsx"
    pd.DataFrame({"Código": ["VES-001"], "Nome": ["Vestido"], "Prioridade": ["urgente"]}).to_excel(path, index=False)

    result = runner.invoke(app, ["produtos", "importar", str(path), "--db", db_path, "--hoje", "2024-01-10"])
    assert result.exit_code == 0, result.output
    assert "Processados com sucesso: 1" in result.stdout

    result = runner.invoke(app, ["painel", "kanban", "--db", db_path, "--hoje", "2024-01-10"])
    assert result.exit_code == 0, result.output
    assert "VES-001" in result.stdout


def test_cli_advance_move_and_status(db_path):
    pid = seed_product(db_path, "P1")

    result = runner.invoke(app, ["etapas", "avancar", str(pid), "--db", db_path, "--hoje", "2024-01-11"])
    assert result.exit_code == 0, result.output
    assert "Modelagem Técnica" in result.stdout

    result = runner.invoke(app, ["etapas", "mover", str(pid), "Aprovado", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert stage_rows(db_path, pid)[4]["status"] == "em_andamento"

    result = runner.invoke(app, ["etapas", "mover", str(pid), "Corte", "--db", db_path])
    assert result.exit_code == 1
    assert "Corte" in result.stdout

    stage_id = stage_rows(db_path, pid)[4]["id"]
    result = runner.invoke(app, ["etapas", "status", str(stage_id), "atrasada", "--db", db_path])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["etapas", "status", str(stage_id), "ok", "--db", db_path])
    assert result.exit_code == 1

    result = runner.invoke(app, ["etapas", "status", str(stage_id), "concluida", "--data", "15/01", "--db", db_path])
    assert result.exit_code != 0


def test_cli_recalcular_selectors(db_path):
    seed_product(db_path, "P1")

    result = runner.invoke(app, ["recalcular", "--db", db_path])
    assert result.exit_code == 2
    assert "exatamente um" in result.stdout

    result = runner.invoke(app, ["recalcular", "--produto", "1", "--todos", "--db", db_path])
    assert result.exit_code == 2

    result = runner.invoke(app, ["recalcular", "--todos", "--db", db_path, "--hoje", "2024-02-01"])
    assert result.exit_code == 0, result.output
    assert "Recalculados 1 produtos" in result.stdout

    result = runner.invoke(app, ["recalcular", "--produto", "99", "--db", db_path])
    assert result.exit_code == 1


def test_cli_painel_reports(db_path):
    seed_product(db_path, "P1", collection="Verão 25", client="Loja Aurora", stylist="Marina")
    for cmd in ("alertas", "funil", "entregas", "aprovacao", "estilistas", "clientes", "kpis"):
        result = runner.invoke(app, ["painel", cmd, "--db", db_path, "--hoje", "2024-01-20"])
        assert result.exit_code == 0, (cmd, result.output)
    result = runner.invoke(app, ["painel", "clientes", "--db", db_path])
    assert "Loja Aurora" in result.stdout


def test_cli_assign_stage(db_path):
    pid = seed_product(db_path, "P1")
    stage_id = stage_rows(db_path, pid)[2]["id"]

    result = runner.invoke(app, ["etapas", "atribuir", str(stage_id), "--db", db_path])
    assert result.exit_code == 1

    result = runner.invoke(app, ["etapas", "atribuir", str(stage_id), "--responsavel", "Ana", "--db", db_path])
    assert result.exit_code == 0, result.output
    assert "atribuída a Ana" in result.stdout

    result = runner.invoke(app, ["etapas", "atribuir", "9999", "--obs", "x", "--db", db_path])
    assert result.exit_code == 1


def test_cli_recalcular_partial_failure_still_succeeds(db_path):
    seed_product(db_path, "P1")
    bad = seed_product(db_path, "P2")
    with connect(db_path) as c:
        c.execute("UPDATE production_stage SET stage_name = 'Piloto Finalizado' "
                  "WHERE product_id = ? AND stage_order = 3", (bad,))

    result = runner.invoke(app, ["recalcular", "--todos", "--db", db_path, "--hoje", "2024-02-01"])
    assert result.exit_code == 0, result.output
    assert "Recalculados 1 produtos" in result.stdout
    assert "Produtos com falha" in result.stdout
