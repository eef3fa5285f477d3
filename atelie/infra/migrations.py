# atelie/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabelas base (colaboradores, produtos, etapas, configuração, arquivos)
V2: semeia a configuração padrão das etapas
"""

from __future__ import annotations

from typing import List

from atelie.config import DEFAULTS, STAGE_ORDER
from .db import connect


SCHEMA_V1: List[str] = [
    # Clientes
    """
    CREATE TABLE IF NOT EXISTS client (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL
    );
    """,
    # Estilistas
    """
    CREATE TABLE IF NOT EXISTS stylist (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        active INTEGER DEFAULT 1
    );
    """,
    # Coleções
    """
    CREATE TABLE IF NOT EXISTS collection (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        season TEXT,
        client_id INTEGER,
        stylist_id INTEGER,
        FOREIGN KEY (client_id) REFERENCES client(id) ON DELETE SET NULL,
        FOREIGN KEY (stylist_id) REFERENCES stylist(id) ON DELETE SET NULL
    );
    """,
    # Produtos (somente leitura para o motor)
    """
    CREATE TABLE IF NOT EXISTS product (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL UNIQUE,
        name TEXT,
        priority TEXT,            -- 'baixa' | 'media' | 'alta' | 'urgente'
        status TEXT DEFAULT 'ativo',
        image_url TEXT,
        collection_id INTEGER,
        client_id INTEGER,
        stylist_id INTEGER,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (collection_id) REFERENCES collection(id) ON DELETE SET NULL,
        FOREIGN KEY (client_id) REFERENCES client(id) ON DELETE SET NULL,
        FOREIGN KEY (stylist_id) REFERENCES stylist(id) ON DELETE SET NULL
    );
    """,
    # Etapas de produção (uma linha por etapa por produto)
    """
    CREATE TABLE IF NOT EXISTS production_stage (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL,
        stage_name TEXT NOT NULL,
        stage_order INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'pendente'
            CHECK (status IN ('pendente', 'em_andamento', 'concluida', 'atrasada')),
        expected_date TEXT,
        actual_date TEXT,
        responsible_party TEXT,
        stylist_id INTEGER,
        notes TEXT,
        version INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT,
        UNIQUE (product_id, stage_order),
        FOREIGN KEY (product_id) REFERENCES product(id) ON DELETE CASCADE,
        FOREIGN KEY (stylist_id) REFERENCES stylist(id) ON DELETE SET NULL
    );
    """,
    # Configuração de duração/multiplicador por etapa
    """
    CREATE TABLE IF NOT EXISTS stage_config (
        stage_name TEXT PRIMARY KEY,
        duration_days INTEGER NOT NULL CHECK (duration_days >= 1),
        priority_multiplier REAL DEFAULT 1.0,
        updated_at TEXT
    );
    """,
    # Metadados de arquivos anexados (o binário fica no storage externo)
    """
    CREATE TABLE IF NOT EXISTS product_file (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL,
        file_name TEXT NOT NULL,
        file_url TEXT,
        file_type TEXT,
        file_size INTEGER,
        uploaded_by TEXT,
        FOREIGN KEY (product_id) REFERENCES product(id) ON DELETE CASCADE
    );
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # Semeia uma vez cada etapa conhecida; linhas existentes não são tocadas
    conn.executemany(
        """
        INSERT OR IGNORE INTO stage_config (stage_name, duration_days, priority_multiplier)
        VALUES (?, ?, ?)
        """,
        [
            (name, DEFAULTS.stage_durations[name], DEFAULTS.priority_multiplier)
            for name in STAGE_ORDER
        ],
    )


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
