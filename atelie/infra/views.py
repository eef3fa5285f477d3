# atelie/infra/views.py
"""
Criação de views auxiliares para consultas frequentes.

Views criadas:
- vw_produto_detalhe: produto com nomes de coleção, cliente e estilista
  (LEFT JOIN: os nomes podem vir nulos).
- vw_etapa_atual:     etapas pendentes/em andamento com o nome do produto,
  útil para depuração do Kanban.

Obs.:
- As views assumem que as migrações V1→V2 já foram aplicadas.
- Um conjunto de índices úteis também é criado, caso não existam.
"""

from __future__ import annotations

from .db import connect


def create_views(db_path: str) -> None:
    with connect(db_path) as c:
        c.executescript(
            """
            DROP VIEW IF EXISTS vw_produto_detalhe;
            CREATE VIEW vw_produto_detalhe AS
            SELECT
                p.id,
                p.code,
                p.name,
                p.priority,
                p.status,
                p.image_url,
                p.collection_id,
                p.client_id,
                p.stylist_id,
                p.created_at,
                col.name AS collection_name,
                cli.name AS client_name,
                sty.name AS stylist_name
            FROM product p
            LEFT JOIN collection col ON col.id = p.collection_id
            LEFT JOIN client     cli ON cli.id = p.client_id
            LEFT JOIN stylist    sty ON sty.id = p.stylist_id;

            DROP VIEW IF EXISTS vw_etapa_atual;
            CREATE VIEW vw_etapa_atual AS
            SELECT
                s.product_id,
                p.code,
                s.stage_name,
                s.stage_order,
                s.status,
                date(s.expected_date) AS expected_date
            FROM production_stage s
            JOIN product p ON p.id = s.product_id
            WHERE s.status IN ('pendente', 'em_andamento');
            """
        )

        c.executescript(
            """
            CREATE INDEX IF NOT EXISTS idx_stage_product    ON production_stage(product_id, stage_order);
            CREATE INDEX IF NOT EXISTS idx_stage_status     ON production_stage(status);
            CREATE INDEX IF NOT EXISTS idx_stage_stylist    ON production_stage(stylist_id);
            CREATE INDEX IF NOT EXISTS idx_product_collection ON product(collection_id);
            CREATE INDEX IF NOT EXISTS idx_file_product     ON product_file(product_id);
            """
        )
