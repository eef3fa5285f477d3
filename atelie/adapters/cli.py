# atelie/adapters/cli.py
"""
CLI do motor de produção do ateliê (Typer).

Comandos principais:
- migrate                          -> aplica migrações e cria views
- config show|set                  -> duração/multiplicador por etapa
- produtos importar <xlsx|csv>     -> importa produtos e cria os pipelines
- produtos detalhe <id>            -> histórico de etapas de um produto
- etapas avancar|mover|status      -> transições de etapa
- etapas pipeline                  -> cria pipelines faltantes
- recalcular --produto|--colecao|--todos
- painel kanban|alertas|funil|entregas|aprovacao|estilistas|clientes|kpis
- tv                               -> modo TV (rotação automática)
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from atelie.config import DB_PATH, STAGE_ORDER
from atelie.domain.errors import AtelieError, InvalidSelector
from atelie.domain.models import iso, parse_date
from atelie.usecases.configuracao import show_stage_config, update_stage_config
from atelie.usecases.cronograma import prepare_db, run_recalculate
from atelie.usecases.etapas import (
    advance_product,
    assign_stage,
    ensure_all_pipelines,
    move_product_to_stage,
    update_stage_status,
)
from atelie.usecases.importar_produtos import run_importar_produtos
from atelie.usecases.painel import alerts_report, dashboard, kanban_board, product_detail


app = typer.Typer(help="Ateliê: motor de etapas de produção")
console = Console()


# -----------------------
# util
# -----------------------

def _print_json(obj) -> None:
    typer.echo(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def _parse_day(value: Optional[str], option: str) -> Optional[date]:
    try:
        return parse_date(value)
    except ValueError:
        raise typer.BadParameter(f"Data inválida: {value!r} (use YYYY-MM-DD)", param_hint=option)


def _fail(e: AtelieError, code: int = 1) -> None:
    console.print(f"[bold red]Erro:[/] {e}")
    raise typer.Exit(code=code)


_STATUS_STYLE = {
    "pendente": "dim",
    "em_andamento": "bold cyan",
    "concluida": "green",
    "atrasada": "bold red",
}
_SEVERITY_STYLE = {"CRÍTICO": "bold red", "URGENTE": "bold yellow", "ATENÇÃO": "yellow"}


def _fmt(column: str, val: Any) -> str:
    if val is None:
        return "-"
    if isinstance(val, bool):
        return "[bold red]sim[/]" if val and column == "atrasado" else ("sim" if val else "não")
    if isinstance(val, date):
        return val.strftime("%d/%m/%Y")
    if isinstance(val, float):
        return f"{val:.2f}".replace(".", ",")
    s = str(val)
    style = _STATUS_STYLE.get(s) if column == "status" else _SEVERITY_STYLE.get(s)
    return f"[{style}]{s}[/]" if style else s


def _display_table(data: Dict[str, Any] | List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe os dados em tabelas formatadas usando Rich."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    # Lista de itens
    if isinstance(data, list) and isinstance(data[0], dict):
        table = Table(title=title, box=box.ROUNDED)
        columns = list(data[0].keys())
        for column in columns:
            if column in ("dias_restantes", "duracao_dias", "multiplicador", "total", "atrasados"):
                table.add_column(column, justify="right")
            elif column in ("previsto", "real", "expected_date"):
                table.add_column(column, justify="center")
            else:
                table.add_column(column)
        for row in data:
            table.add_row(*[_fmt(col, row.get(col)) for col in columns])
        console.print(table)
        return

    # Operações em lote
    if isinstance(data, dict) and "registros" in data and "total" in data:
        titulo = f"{data['tipo']} em Lote" if "tipo" in data else "Registros em Lote"
        panel_content = [
            f"Total de registros: {data['total']}",
            f"Processados com sucesso: {data.get('sucessos', 0)}",
        ]
        if "pipelines_criados" in data:
            panel_content.append(f"Pipelines criados: {data['pipelines_criados']}")
        if data.get("erros"):
            panel_content.append(f"Erros: {len(data['erros'])}")
        console.print(Panel("\n".join(panel_content), title=titulo))

        if data.get("erros"):
            erro_table = Table(title="Erros Encontrados")
            erro_table.add_column("Linha")
            erro_table.add_column("Erro")
            for erro in data["erros"]:
                erro_table.add_row(str(erro.get("linha", "?")), erro.get("mensagem", "Erro desconhecido"))
            console.print(erro_table)
        return

    # Dicionário simples → tabela chave/valor
    if isinstance(data, dict) and all(not isinstance(v, (list, dict)) for v in data.values()):
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Campo")
        table.add_column("Valor", justify="right")
        for k, v in data.items():
            table.add_row(str(k), _fmt(k, v))
        console.print(table)
        return

    _print_json(data)


DbOption = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")
TodayOption = typer.Option(None, "--hoje", help="Data de referência YYYY-MM-DD (padrão: hoje)")


# -----------------------
# infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = DbOption):
    """Aplica migrações e recria as views auxiliares."""
    prepare_db(db_path)
    typer.echo(f">> Migrações aplicadas e views criadas em: {db_path}")


# -----------------------
# configuração de etapas
# -----------------------

config_app = typer.Typer(help="Duração padrão e multiplicador de prioridade por etapa.")
app.add_typer(config_app, name="config")


@config_app.command("show")
def cmd_config_show(db_path: str = DbOption):
    """Exibe a configuração efetiva das etapas."""
    _display_table(show_stage_config(db_path), title="Configuração das Etapas")


@config_app.command("set")
def cmd_config_set(
    etapa: str = typer.Argument(..., help=f"Nome da etapa ({', '.join(STAGE_ORDER)})"),
    duracao: Optional[int] = typer.Option(None, "--duracao", help="Duração em dias (1–30)"),
    multiplicador: Optional[float] = typer.Option(None, "--multiplicador", help="Multiplicador (0.1–5.0)"),
    db_path: str = DbOption,
):
    """Atualiza a configuração de uma etapa (apenas os valores informados)."""
    try:
        out = update_stage_config(etapa, duracao, multiplicador, db_path=db_path)
    except AtelieError as e:
        _fail(e)
    typer.echo(">> Configuração atualizada. Use `recalcular --todos` para aplicar aos produtos.")
    _display_table(out, title=f"Etapa: {etapa}")


# -----------------------
# produtos
# -----------------------

produtos_app = typer.Typer(help="Cadastro de produtos.")
app.add_typer(produtos_app, name="produtos")


@produtos_app.command("importar")
def cmd_produtos_importar(
    path: str = typer.Argument(..., help="Planilha de produtos (XLSX ou CSV)"),
    db_path: str = DbOption,
    hoje: Optional[str] = TodayOption,
):
    """Importa produtos em lote e cria o pipeline de cada um."""
    info = run_importar_produtos(path, db_path=db_path, today=_parse_day(hoje, "--hoje"))
    _display_table(info, title="Importação de Produtos")
    if info["erros"]:
        raise typer.Exit(code=1)


@produtos_app.command("detalhe")
def cmd_produtos_detalhe(
    product_id: int = typer.Argument(..., help="ID do produto"),
    db_path: str = DbOption,
    hoje: Optional[str] = TodayOption,
):
    """Mostra o produto com todas as etapas."""
    try:
        out = product_detail(product_id, db_path=db_path, today=_parse_day(hoje, "--hoje"))
    except AtelieError as e:
        _fail(e)
    etapas = out.pop("etapas")
    out.pop("arquivos_por_tipo")
    _display_table(out, title=f"Produto {out['codigo']}")
    _display_table(etapas, title="Etapas")


# -----------------------
# etapas
# -----------------------

etapas_app = typer.Typer(help="Transições de etapa.")
app.add_typer(etapas_app, name="etapas")


@etapas_app.command("avancar")
def cmd_etapas_avancar(
    product_id: int = typer.Argument(..., help="ID do produto"),
    db_path: str = DbOption,
    hoje: Optional[str] = TodayOption,
):
    """Conclui a etapa atual e ativa a próxima."""
    prepare_db(db_path)
    try:
        res = advance_product(product_id, db_path=db_path, today=_parse_day(hoje, "--hoje"))
    except AtelieError as e:
        _fail(e)
    if res.advanced:
        typer.echo(f">> {res.completed_stage} concluída em {iso(res.actual_date)}; {res.message}.")
    else:
        console.print(f"[yellow]{res.message}[/]")


@etapas_app.command("mover")
def cmd_etapas_mover(
    product_id: int = typer.Argument(..., help="ID do produto"),
    etapa: str = typer.Argument(..., help="Etapa de destino"),
    db_path: str = DbOption,
):
    """Move o produto diretamente para uma etapa (como no Kanban)."""
    prepare_db(db_path)
    try:
        changed = move_product_to_stage(product_id, etapa, db_path=db_path)
    except AtelieError as e:
        _fail(e)
    typer.echo(f">> Produto {product_id} movido para '{etapa}'.")
    _display_table(changed, title="Etapas alteradas")


@etapas_app.command("status")
def cmd_etapas_status(
    stage_id: int = typer.Argument(..., help="ID da etapa"),
    status: str = typer.Argument(..., help="pendente | em_andamento | concluida | atrasada"),
    data: Optional[str] = typer.Option(None, "--data", help="Data real YYYY-MM-DD"),
    db_path: str = DbOption,
):
    """Edita o status (e a data real) de uma etapa."""
    actual = _parse_day(data, "--data")
    prepare_db(db_path)
    try:
        st = update_stage_status(stage_id, status, actual, db_path=db_path)
    except AtelieError as e:
        _fail(e)
    typer.echo(f">> Etapa {st.id} ({st.stage_name}) agora está '{st.status}'.")


@etapas_app.command("atribuir")
def cmd_etapas_atribuir(
    stage_id: int = typer.Argument(..., help="ID da etapa"),
    responsavel: Optional[str] = typer.Option(None, "--responsavel", help="Responsável pela etapa"),
    estilista: Optional[int] = typer.Option(None, "--estilista", help="ID do estilista"),
    obs: Optional[str] = typer.Option(None, "--obs", help="Observações"),
    db_path: str = DbOption,
):
    """Atribui responsável/estilista (e observações) a uma etapa."""
    if responsavel is None and estilista is None and obs is None:
        console.print("[bold red]Erro:[/] informe --responsavel, --estilista ou --obs.")
        raise typer.Exit(code=1)
    prepare_db(db_path)
    try:
        st = assign_stage(stage_id, responsavel, estilista, obs, db_path=db_path)
    except AtelieError as e:
        _fail(e)
    typer.echo(f">> Etapa {st.id} ({st.stage_name}) atribuída a {st.responsible_party or '-'}.")


@etapas_app.command("pipeline")
def cmd_etapas_pipeline(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Cria o pipeline de etapas dos produtos que ainda não têm."""
    prepare_db(db_path)
    out = ensure_all_pipelines(db_path=db_path, today=_parse_day(hoje, "--hoje"))
    typer.echo(f">> Pipelines criados: {out['criados']}")
    if out["erros"]:
        _display_table(out["erros"], title="Produtos com erro")
        raise typer.Exit(code=1)


# -----------------------
# recálculo
# -----------------------

@app.command("recalcular")
def cmd_recalcular(
    produto: Optional[int] = typer.Option(None, "--produto", help="Recalcular um produto"),
    colecao: Optional[int] = typer.Option(None, "--colecao", help="Recalcular uma coleção"),
    todos: bool = typer.Option(False, "--todos", help="Recalcular todos os produtos"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Prazo em segundos (lote)"),
    db_path: str = DbOption,
    hoje: Optional[str] = TodayOption,
):
    """Recalcula as datas previstas (exatamente um seletor)."""
    payload = {"productId": produto, "collectionId": colecao, "recalculateAll": todos}
    try:
        out = run_recalculate(payload, db_path=db_path, today=_parse_day(hoje, "--hoje"),
                              timeout_seconds=timeout)
    except InvalidSelector as e:
        _fail(e, code=2)
    except AtelieError as e:
        _fail(e)

    typer.echo(f">> {out['message']}")
    failures = out.get("failures") or []
    if out.get("interrupted"):
        console.print(f"[yellow]Interrompido pelo prazo: {out['productsRecalculated']}"
                      f"/{out['productsRequested']} produtos recalculados.[/]")
    if failures:
        _display_table(failures, title="Produtos com falha")


# -----------------------
# painéis
# -----------------------

painel_app = typer.Typer(help="Painéis de produção.")
app.add_typer(painel_app, name="painel")


@painel_app.command("kanban")
def cmd_painel_kanban(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Produtos agrupados pela etapa atual."""
    board = kanban_board(db_path=db_path, today=_parse_day(hoje, "--hoje"))
    for etapa, produtos in board.items():
        rows = [{k: p[k] for k in ("id", "codigo", "nome", "colecao", "status", "previsto", "atrasado")}
                for p in produtos]
        _display_table(rows, title=f"{etapa} ({len(produtos)})")


@painel_app.command("alertas")
def cmd_painel_alertas(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Produtos com prazo vencido ou próximo (até 3 dias)."""
    _display_table(alerts_report(db_path=db_path, today=_parse_day(hoje, "--hoje")), title="Alertas de Prazo")


def _dash(db_path: str, hoje: Optional[str]) -> Dict[str, Any]:
    return dashboard(db_path=db_path, today=_parse_day(hoje, "--hoje"))


@painel_app.command("funil")
def cmd_painel_funil(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Funil de produção por etapa."""
    _display_table(_dash(db_path, hoje)["funil"], title="Funil de Produção")


@painel_app.command("entregas")
def cmd_painel_entregas(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Entregas no prazo, atrasadas e urgentes."""
    _display_table(_dash(db_path, hoje)["entregas"], title="Desempenho de Entregas")


@painel_app.command("aprovacao")
def cmd_painel_aprovacao(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Aprovados vs aguardando aprovação."""
    _display_table(_dash(db_path, hoje)["aprovacao"], title="Taxa de Aprovação")


@painel_app.command("estilistas")
def cmd_painel_estilistas(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Carga e pontualidade por estilista."""
    _display_table(_dash(db_path, hoje)["estilistas"], title="Desempenho por Estilista")


@painel_app.command("clientes")
def cmd_painel_clientes(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Clientes com mais coleções."""
    _display_table(_dash(db_path, hoje)["clientes"], title="Principais Clientes")


@painel_app.command("kpis")
def cmd_painel_kpis(db_path: str = DbOption, hoje: Optional[str] = TodayOption):
    """Indicadores gerais e próximas entregas."""
    dash = _dash(db_path, hoje)
    _display_table(dash["kpis"], title="Indicadores")
    _display_table(dash["prototipagem"], title="Prototipagem")
    _display_table(dash["cronograma"], title="Próximas Entregas")


# -----------------------
# modo TV
# -----------------------

@app.command("tv")
def cmd_tv(db_path: str = DbOption):
    """Inicia o modo TV (visões em rotação automática)."""
    from atelie.adapters.tv_mode import main as tv_main
    prepare_db(db_path)
    try:
        tv_main(db_path)
    except KeyboardInterrupt:
        typer.echo("\nSaindo do modo TV...")
        raise typer.Exit(0)


def main():
    app()


if __name__ == "__main__":
    main()
