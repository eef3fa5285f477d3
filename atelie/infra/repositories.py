# atelie/infra/repositories.py
"""
Repositórios (DAO) para acesso e manipulação de dados no SQLite.

Classes:
- StageConfigRepo
- ProductRepo
- StageRepo
- FileRepo
- ClientRepo
- StylistRepo
- CollectionRepo

Métodos que participam de uma operação atômica aceitam `conn` opcional:
quando informado, a escrita acontece dentro da transação do chamador.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from atelie.domain.errors import ConcurrentModification, ProductNotFound
from atelie.domain.models import (
    Product,
    ProductFile,
    ProductionStage,
    ProductRecord,
    StageConfig,
    iso,
)
from .db import connect


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


def _rows(cur: sqlite3.Cursor) -> List[Dict[str, Any]]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


# -------------------------
# Configuração de etapas
# -------------------------

class StageConfigRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def get_all(self) -> List[StageConfig]:
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT stage_name, duration_days, priority_multiplier FROM stage_config"
            )
            return [StageConfig.from_row(r) for r in _rows(cur)]

    def map_by_name(self) -> Dict[str, StageConfig]:
        return {cfg.stage_name: cfg for cfg in self.get_all()}

    def get(self, stage_name: str) -> Optional[StageConfig]:
        with connect(self.db_path) as c:
            row = c.execute(
                "SELECT stage_name, duration_days, priority_multiplier FROM stage_config WHERE stage_name = ?",
                (stage_name,),
            ).fetchone()
            return StageConfig.from_row(row) if row else None

    def upsert(self, rows: Iterable[Any]) -> None:
        rows = [_as_dict(r) for r in rows]
        with connect(self.db_path) as c:
            for r in rows:
                c.execute(
                    """
                    INSERT INTO stage_config (stage_name, duration_days, priority_multiplier, updated_at)
                    VALUES (:stage_name, :duration_days, :priority_multiplier, :updated_at)
                    ON CONFLICT(stage_name) DO UPDATE SET
                        duration_days=excluded.duration_days,
                        priority_multiplier=excluded.priority_multiplier,
                        updated_at=excluded.updated_at
                    """,
                    {**r, "updated_at": _now()},
                )

    def update(
        self,
        stage_name: str,
        duration_days: Optional[int] = None,
        priority_multiplier: Optional[float] = None,
    ) -> int:
        """Atualiza os campos informados num único UPDATE; devolve linhas afetadas."""
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                UPDATE stage_config SET
                    duration_days = COALESCE(:duration_days, duration_days),
                    priority_multiplier = COALESCE(:priority_multiplier, priority_multiplier),
                    updated_at = :updated_at
                WHERE stage_name = :stage_name
                """,
                {
                    "stage_name": stage_name,
                    "duration_days": duration_days,
                    "priority_multiplier": priority_multiplier,
                    "updated_at": _now(),
                },
            )
            return cur.rowcount


# -------------------------
# Produto
# -------------------------

_PRODUCT_COLS = (
    "id, code, name, priority, status, image_url, collection_id, client_id, "
    "stylist_id, created_at, collection_name, client_name, stylist_name"
)


def _record(row: Dict[str, Any]) -> ProductRecord:
    return ProductRecord(
        product=Product(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            priority=row["priority"],
            status=row["status"] or "ativo",
            image_url=row["image_url"],
            collection_id=row["collection_id"],
            client_id=row["client_id"],
            stylist_id=row["stylist_id"],
            created_at=row["created_at"],
        ),
        collection_name=row["collection_name"],
        client_name=row["client_name"],
        stylist_name=row["stylist_name"],
    )


class ProductRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def upsert(self, rows: Iterable[Any]) -> List[int]:
        """Insere/atualiza produtos pelo `code`; devolve os ids na mesma ordem."""
        rows = [_as_dict(r) for r in rows]
        ids: List[int] = []
        with connect(self.db_path) as c:
            for r in rows:
                payload = {
                    "code": r.get("code"),
                    "name": r.get("name"),
                    "priority": r.get("priority"),
                    "status": r.get("status") or "ativo",
                    "image_url": r.get("image_url"),
                    "collection_id": r.get("collection_id"),
                    "client_id": r.get("client_id"),
                    "stylist_id": r.get("stylist_id"),
                }
                c.execute(
                    """
                    INSERT INTO product
                        (code, name, priority, status, image_url, collection_id, client_id, stylist_id)
                    VALUES
                        (:code, :name, :priority, :status, :image_url, :collection_id, :client_id, :stylist_id)
                    ON CONFLICT(code) DO UPDATE SET
                        name=excluded.name,
                        priority=excluded.priority,
                        status=excluded.status,
                        image_url=excluded.image_url,
                        collection_id=excluded.collection_id,
                        client_id=excluded.client_id,
                        stylist_id=excluded.stylist_id
                    """,
                    payload,
                )
                ids.append(c.execute("SELECT id FROM product WHERE code = ?", (payload["code"],)).fetchone()[0])
        return ids

    def get(self, product_id: int) -> ProductRecord:
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT {_PRODUCT_COLS} FROM vw_produto_detalhe WHERE id = ?", (product_id,))
            rows = _rows(cur)
        if not rows:
            raise ProductNotFound(product_id)
        return _record(rows[0])

    def list_records(self) -> List[ProductRecord]:
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT {_PRODUCT_COLS} FROM vw_produto_detalhe ORDER BY id")
            return [_record(r) for r in _rows(cur)]

    def ids_all(self) -> List[int]:
        with connect(self.db_path) as c:
            return [r[0] for r in c.execute("SELECT id FROM product ORDER BY id").fetchall()]

    def ids_by_collection(self, collection_id: int) -> List[int]:
        with connect(self.db_path) as c:
            return [
                r[0] for r in c.execute(
                    "SELECT id FROM product WHERE collection_id = ? ORDER BY id", (collection_id,)
                ).fetchall()
            ]

    def id_by_code(self, code: str) -> Optional[int]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT id FROM product WHERE code = ?", (code,)).fetchone()
            return row[0] if row else None

    def ids_without_stages(self) -> List[int]:
        with connect(self.db_path) as c:
            return [
                r[0] for r in c.execute(
                    """
                    SELECT p.id FROM product p
                    WHERE NOT EXISTS (SELECT 1 FROM production_stage s WHERE s.product_id = p.id)
                    ORDER BY p.id
                    """
                ).fetchall()
            ]


# -------------------------
# Etapas de produção
# -------------------------

_STAGE_COLS = (
    "id, product_id, stage_name, stage_order, status, expected_date, actual_date, "
    "responsible_party, stylist_id, notes, version"
)


class StageRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def list_all(self) -> List[ProductionStage]:
        with connect(self.db_path) as c:
            cur = c.execute(f"SELECT {_STAGE_COLS} FROM production_stage ORDER BY product_id, stage_order")
            return [ProductionStage.from_row(r) for r in _rows(cur)]

    def list_for_product(self, product_id: int, conn: Optional[sqlite3.Connection] = None) -> List[ProductionStage]:
        sql = f"SELECT {_STAGE_COLS} FROM production_stage WHERE product_id = ? ORDER BY stage_order"
        if conn is not None:
            return [ProductionStage.from_row(r) for r in _rows(conn.execute(sql, (product_id,)))]
        with connect(self.db_path) as c:
            return [ProductionStage.from_row(r) for r in _rows(c.execute(sql, (product_id,)))]

    def get(self, stage_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[ProductionStage]:
        sql = f"SELECT {_STAGE_COLS} FROM production_stage WHERE id = ?"
        if conn is not None:
            rows = _rows(conn.execute(sql, (stage_id,)))
        else:
            with connect(self.db_path) as c:
                rows = _rows(c.execute(sql, (stage_id,)))
        return ProductionStage.from_row(rows[0]) if rows else None

    def insert_many(self, stages: Iterable[ProductionStage], conn: sqlite3.Connection) -> int:
        payload = [
            {
                "product_id": s.product_id,
                "stage_name": s.stage_name,
                "stage_order": s.stage_order,
                "status": s.status,
                "expected_date": iso(s.expected_date),
                "actual_date": iso(s.actual_date),
                "responsible_party": s.responsible_party,
                "stylist_id": s.stylist_id,
                "notes": s.notes,
                "updated_at": _now(),
            }
            for s in stages
        ]
        conn.executemany(
            """
            INSERT INTO production_stage
                (product_id, stage_name, stage_order, status, expected_date, actual_date,
                 responsible_party, stylist_id, notes, updated_at)
            VALUES
                (:product_id, :stage_name, :stage_order, :status, :expected_date, :actual_date,
                 :responsible_party, :stylist_id, :notes, :updated_at)
            """,
            payload,
        )
        return len(payload)

    def save(self, stages: Iterable[ProductionStage], conn: sqlite3.Connection) -> int:
        """Grava status/datas com checagem otimista de versão.

        Cada linha só é atualizada se a `version` lida ainda for a do banco;
        caso contrário levanta `ConcurrentModification` e a transação do
        chamador é desfeita.
        """
        n = 0
        for s in stages:
            cur = conn.execute(
                """
                UPDATE production_stage SET
                    status = :status,
                    expected_date = :expected_date,
                    actual_date = :actual_date,
                    version = version + 1,
                    updated_at = :updated_at
                WHERE id = :id AND version = :version
                """,
                {
                    "id": s.id,
                    "status": s.status,
                    "expected_date": iso(s.expected_date),
                    "actual_date": iso(s.actual_date),
                    "version": s.version,
                    "updated_at": _now(),
                },
            )
            if cur.rowcount != 1:
                raise ConcurrentModification(s.id)
            n += 1
        return n

    def assign(
        self,
        stage_id: int,
        responsible_party: Optional[str] = None,
        stylist_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                UPDATE production_stage SET
                    responsible_party = COALESCE(?, responsible_party),
                    stylist_id = COALESCE(?, stylist_id),
                    notes = COALESCE(?, notes),
                    version = version + 1
                WHERE id = ?
                """,
                (responsible_party, stylist_id, notes, stage_id),
            )


# -------------------------
# Arquivos (somente metadados)
# -------------------------

class FileRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, row: Dict[str, Any]) -> int:
        with connect(self.db_path) as c:
            cur = c.execute(
                """
                INSERT INTO product_file (product_id, file_name, file_url, file_type, file_size, uploaded_by)
                VALUES (:product_id, :file_name, :file_url, :file_type, :file_size, :uploaded_by)
                """,
                {"file_url": None, "file_type": None, "file_size": None, "uploaded_by": None, **row},
            )
            return cur.lastrowid

    def get_all(self) -> List[ProductFile]:
        with connect(self.db_path) as c:
            cur = c.execute(
                "SELECT id, product_id, file_name, file_url, file_type, file_size FROM product_file ORDER BY id"
            )
            return [ProductFile(**r) for r in _rows(cur)]


# -------------------------
# Colaboradores (cliente, estilista, coleção)
# -------------------------

class ClientRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, name: str) -> int:
        with connect(self.db_path) as c:
            return c.execute("INSERT INTO client (name) VALUES (?)", (name,)).lastrowid

    def get_all(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return _rows(c.execute("SELECT id, name FROM client ORDER BY name"))

    def id_by_name(self, name: str) -> Optional[int]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT id FROM client WHERE name = ?", (name,)).fetchone()
            return row[0] if row else None


class StylistRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(self, name: str, active: bool = True) -> int:
        with connect(self.db_path) as c:
            return c.execute(
                "INSERT INTO stylist (name, active) VALUES (?, ?)", (name, 1 if active else 0)
            ).lastrowid

    def names_by_id(self, only_active: bool = True) -> Dict[int, str]:
        sql = "SELECT id, name FROM stylist"
        if only_active:
            sql += " WHERE active = 1"
        with connect(self.db_path) as c:
            return {r[0]: r[1] for r in c.execute(sql).fetchall()}

    def id_by_name(self, name: str) -> Optional[int]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT id FROM stylist WHERE name = ?", (name,)).fetchone()
            return row[0] if row else None


class CollectionRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def insert(
        self,
        name: str,
        client_id: Optional[int] = None,
        season: Optional[str] = None,
        stylist_id: Optional[int] = None,
    ) -> int:
        with connect(self.db_path) as c:
            return c.execute(
                "INSERT INTO collection (name, season, client_id, stylist_id) VALUES (?, ?, ?, ?)",
                (name, season, client_id, stylist_id),
            ).lastrowid

    def get_all(self) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            return _rows(c.execute("SELECT id, name, season, client_id, stylist_id FROM collection ORDER BY id"))

    def id_by_name(self, name: str) -> Optional[int]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT id FROM collection WHERE name = ?", (name,)).fetchone()
            return row[0] if row else None
