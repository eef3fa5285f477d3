# atelie/domain/snapshot.py
"""
Builder do snapshot "produto com etapa".

Junta produtos, etapas e arquivos num modelo de leitura desnormalizado,
reconstruído a cada requisição. A construção não tem efeitos colaterais e
tolera joins ausentes (coleção/cliente/estilista) usando rótulos
substitutos, sem derrubar o lote inteiro.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List

from atelie.config import (
    PLACEHOLDER_CLIENT,
    PLACEHOLDER_COLLECTION,
    PLACEHOLDER_STYLIST,
)
from atelie.domain.lifecycle import current_stage, ordered
from atelie.domain.models import (
    ProductFile,
    ProductionStage,
    ProductRecord,
    ProductWithStage,
)


def _label(value, placeholder: str) -> str:
    if value is None:
        return placeholder
    s = str(value).strip()
    return s or placeholder


def build_snapshot(
    record: ProductRecord,
    stages: Iterable[ProductionStage],
    files: Iterable[ProductFile] = (),
) -> ProductWithStage:
    """Monta o snapshot de um único produto."""
    p = record.product
    seq = ordered(stages)
    return ProductWithStage(
        id=p.id,
        code=p.code,
        name=p.name,
        priority=p.priority,
        status=p.status,
        image_url=p.image_url,
        collection_id=p.collection_id,
        client_id=p.client_id,
        stylist_id=p.stylist_id,
        collection_name=_label(record.collection_name, PLACEHOLDER_COLLECTION),
        client_name=_label(record.client_name, PLACEHOLDER_CLIENT),
        stylist_name=_label(record.stylist_name, PLACEHOLDER_STYLIST),
        created_at=p.created_at,
        current_stage=current_stage(seq),
        stages=seq,
        files=list(files),
    )


def build_snapshots(
    records: Iterable[ProductRecord],
    stages: Iterable[ProductionStage],
    files: Iterable[ProductFile] = (),
) -> List[ProductWithStage]:
    """Um `ProductWithStage` por produto, na ordem dos registros recebidos."""
    stages_by: Dict[int, List[ProductionStage]] = defaultdict(list)
    for st in stages:
        stages_by[st.product_id].append(st)
    files_by: Dict[int, List[ProductFile]] = defaultdict(list)
    for f in files:
        files_by[f.product_id].append(f)

    return [
        build_snapshot(r, stages_by.get(r.product.id, []), files_by.get(r.product.id, []))
        for r in records
    ]


def products_by_stage(snapshots: Iterable[ProductWithStage], stage_name: str) -> List[ProductWithStage]:
    """Produtos cuja etapa atual é `stage_name` (uma coluna do Kanban)."""
    return [
        s for s in snapshots
        if s.current_stage is not None and s.current_stage.stage_name == stage_name
    ]


def file_type_counts(snapshot: ProductWithStage) -> Dict[str, int]:
    """Contagem de anexos por tipo (ex.: "image/png": 2)."""
    out: Dict[str, int] = defaultdict(int)
    for f in snapshot.files:
        out[f.file_type or "desconhecido"] += 1
    return dict(out)
