# atelie/usecases/importar_produtos.py
"""
UC: importar PRODUTOS em lote a partir de uma planilha (XLSX/CSV).

Para cada linha:
- resolve cliente, estilista e coleção pelo nome (criando quando não existem);
- insere/atualiza o produto pelo código;
- garante o pipeline de seis etapas, já com as datas previstas.

Linhas inválidas (sem código, prioridade desconhecida) e falhas de
agendamento entram em `erros` com o número da linha; as demais seguem.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from atelie.config import DB_PATH
from atelie.adapters.planilhas import load_produtos
from atelie.domain.errors import AtelieError
from atelie.infra.logger import (
    log_database_operation,
    log_file_operation,
    log_system_event,
    log_transaction,
    print_system,
)
from atelie.infra.repositories import ClientRepo, CollectionRepo, ProductRepo, StylistRepo
from atelie.usecases.cronograma import prepare_db
from atelie.usecases.etapas import ensure_pipeline


class _NameResolver:
    """Cache nome → id por execução, criando o registro quando falta."""

    def __init__(self, db_path: str):
        self.clients = ClientRepo(db_path)
        self.stylists = StylistRepo(db_path)
        self.collections = CollectionRepo(db_path)
        self._cache: Dict[tuple, int] = {}

    def client(self, name: Optional[str]) -> Optional[int]:
        if not name:
            return None
        key = ("client", name)
        if key not in self._cache:
            cid = self.clients.id_by_name(name)
            if cid is None:
                cid = self.clients.insert(name)
                log_database_operation("client", "INSERT", 1, name=name)
            self._cache[key] = cid
        return self._cache[key]

    def stylist(self, name: Optional[str]) -> Optional[int]:
        if not name:
            return None
        key = ("stylist", name)
        if key not in self._cache:
            sid = self.stylists.id_by_name(name)
            if sid is None:
                sid = self.stylists.insert(name)
                log_database_operation("stylist", "INSERT", 1, name=name)
            self._cache[key] = sid
        return self._cache[key]

    def collection(self, name: Optional[str], client_id: Optional[int],
                   season: Optional[str], stylist_id: Optional[int]) -> Optional[int]:
        if not name:
            return None
        key = ("collection", name)
        if key not in self._cache:
            cid = self.collections.id_by_name(name)
            if cid is None:
                cid = self.collections.insert(name, client_id=client_id, season=season, stylist_id=stylist_id)
                log_database_operation("collection", "INSERT", 1, name=name)
            self._cache[key] = cid
        return self._cache[key]


def _validate_row(row: Dict[str, Any]) -> Optional[str]:
    if not row.get("codigo"):
        return "Código do produto ausente"
    if row.get("prioridade_raw") and row.get("prioridade") is None:
        return f"Prioridade inválida: {row['prioridade_raw']!r}"
    return None


def run_importar_produtos(path: str, db_path: str = DB_PATH, today: Optional[date] = None) -> Dict[str, Any]:
    """Lê a planilha e importa todos os produtos válidos."""
    log_system_event("importar_produtos_start", {"file_path": path})
    log_file_operation("import", path)

    try:
        rows = load_produtos(path)
        log_file_operation("import", path, rows_processed=len(rows))
        prepare_db(db_path)
    except Exception as e:
        log_transaction("importar_produtos", {"file": path}, error=str(e))
        log_system_event("importar_produtos_error", {"file_path": path, "error": str(e)}, level="error")
        raise

    names = _NameResolver(db_path)
    prod_repo = ProductRepo(db_path)
    registros: List[Dict[str, Any]] = []
    erros: List[Dict[str, Any]] = []
    pipelines = 0

    for row in rows:
        problem = _validate_row(row)
        if problem:
            erros.append({"linha": row["linha"], "mensagem": problem})
            continue

        client_id = names.client(row.get("cliente"))
        stylist_id = names.stylist(row.get("estilista"))
        collection_id = names.collection(row.get("colecao"), client_id, row.get("temporada"), stylist_id)
        (pid,) = prod_repo.upsert([{
            "code": row["codigo"],
            "name": row.get("nome"),
            "priority": row.get("prioridade"),
            "image_url": row.get("imagem"),
            "collection_id": collection_id,
            "client_id": client_id,
            "stylist_id": stylist_id,
        }])
        log_database_operation("product", "UPSERT", 1, code=row["codigo"])
        registros.append({"linha": row["linha"], "codigo": row["codigo"], "product_id": pid})

        try:
            if ensure_pipeline(pid, db_path=db_path, today=today):
                pipelines += 1
        except AtelieError as e:
            erros.append({"linha": row["linha"], "mensagem": f"{row['codigo']}: {e}"})

    result = {
        "tipo": "Produtos",
        "arquivo": path,
        "total": len(rows),
        "sucessos": len(registros),
        "pipelines_criados": pipelines,
        "registros": registros,
        "erros": erros,
    }
    if erros:
        print_system(f">> {len(erros)} linha(s) com problema na importação.")
    log_transaction("importar_produtos", {"file": path, "rows_count": len(rows)},
                    result={k: v for k, v in result.items() if k != "registros"})
    log_system_event("importar_produtos_success", {"file_path": path, "sucessos": len(registros)})
    return result
