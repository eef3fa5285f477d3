"""
Modo TV: tela cheia com rotação automática entre as visões de produção.

As visões (geral, atrasados, em andamento) vêm de `atelie.usecases.painel`;
aqui apenas montamos as tabelas Rich e controlamos a rotação.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Group
from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, ScrollableContainer
from textual.widgets import Footer, Header, Static

from atelie.config import DB_PATH, DEFAULTS
from atelie.infra.logger import log_system_event
from atelie.usecases.painel import TV_VIEWS, load_snapshots, next_view


def render_overview(data: Dict[str, Any]) -> Group:
    """KPIs no topo e uma linha por etapa com os primeiros produtos."""
    k = data["kpis"]
    header = Text.assemble(
        ("Total ", "bold"), str(k["total"]), "   ",
        ("Em andamento ", "bold cyan"), str(k["in_progress"]), "   ",
        ("Atrasados ", "bold red"), str(k["overdue"]), "   ",
        ("Concluídos ", "bold green"), str(k["completed"]),
    )
    table = Table(box=box.SIMPLE_HEAVY, expand=True)
    table.add_column("Etapa", style="bold")
    table.add_column("Qtde", justify="right")
    table.add_column("Atrasados", justify="right")
    table.add_column("Produtos")
    for st in data["etapas"]:
        names = [
            f"[red]{p['codigo']}[/]" if p["atrasado"] else p["codigo"]
            for p in st["produtos"]
        ]
        if st["restantes"]:
            names.append(f"+{st['restantes']}")
        late = f"[bold red]{st['atrasados']}[/]" if st["atrasados"] else "0"
        table.add_row(st["etapa"], str(st["total"]), late, ", ".join(names) or "-")
    return Group(header, table)


def render_products(rows: List[Dict[str, Any]]) -> Any:
    if not rows:
        return Text("Nenhum produto nesta visão.", style="dim")
    table = Table(box=box.SIMPLE_HEAVY, expand=True)
    for col in ("Código", "Produto", "Coleção", "Cliente", "Etapa", "Previsto"):
        table.add_column(col)
    for r in rows:
        style = "red" if r["atrasado"] else None
        table.add_row(r["codigo"], r["nome"], r["colecao"], r["cliente"], r["etapa"],
                      r["previsto"] or "-", style=style)
    return table


def render_view(index: int, db_path: str = DB_PATH, today: Optional[date] = None):
    """Título e renderizável da visão `index`, lidos do banco agora."""
    today = today or date.today()
    title, fn = TV_VIEWS[index]
    data = fn(load_snapshots(db_path), today)
    body = render_overview(data) if isinstance(data, dict) else render_products(data)
    return title, body


class TvModeApp(App):
    """Painel de chão de fábrica com rotação automática."""

    CSS = """
    Screen {
        background: #001122;
    }

    #tv-top {
        height: 3;
        background: #003366;
    }

    #view-title {
        width: 1fr;
        color: #ffffff;
        text-style: bold;
        padding: 1;
    }

    #clock {
        width: 24;
        color: #ccddff;
        text-align: right;
        padding: 1;
    }

    #view-body {
        padding: 1 2;
    }
    """

    TITLE = "Ateliê - Modo TV"
    BINDINGS = [
        ("q", "quit", "Sair"),
        ("escape", "quit", "Sair"),
        ("n", "next_view", "Próxima visão"),
        ("r", "refresh_view", "Atualizar"),
    ]

    def __init__(self, db_path: str = DB_PATH, rotation_seconds: int = DEFAULTS.tv_rotation_seconds) -> None:
        super().__init__()
        self.db_path = db_path
        self.rotation_seconds = rotation_seconds
        self.view_index = 0

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="tv-top"):
            yield Static("", id="view-title")
            yield Static("", id="clock")
        with ScrollableContainer():
            yield Static("", id="view-body")
        yield Footer()

    def on_mount(self) -> None:
        self.action_refresh_view()
        self.update_clock()
        self.set_interval(self.rotation_seconds, self.action_next_view)
        self.set_interval(1, self.update_clock)
        log_system_event("tv_mode_start", {"db": self.db_path, "rotation": self.rotation_seconds})

    def update_clock(self) -> None:
        self.query_one("#clock", Static).update(datetime.now().strftime("%d/%m/%Y %H:%M:%S"))

    def action_next_view(self) -> None:
        self.view_index = next_view(self.view_index)
        self.action_refresh_view()

    def action_refresh_view(self) -> None:
        title, body = render_view(self.view_index, self.db_path)
        position = f"{self.view_index + 1}/{len(TV_VIEWS)}"
        self.query_one("#view-title", Static).update(f"{title}  ({position})")
        self.query_one("#view-body", Static).update(body)


def main(db_path: str = DB_PATH) -> None:
    """Run the TV mode application."""
    TvModeApp(db_path=db_path).run()


if __name__ == "__main__":
    main()
