# atelie/domain/models.py
"""
Modelos (dataclasses) do domínio.

Observação importante:
- Os repositórios devolvem estas dataclasses; os campos vindos de joins
  (coleção, cliente, estilista) são sempre Optional e o builder do
  snapshot decide o rótulo substituto.
- Datas trafegam como `datetime.date`; no SQLite ficam em ISO (YYYY-MM-DD).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Mapping, Optional


def parse_date(val: Any) -> Optional[date]:
    """Converte ISO/`datetime`/`date` em `date` (None se vazio)."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    if not s:
        return None
    # aceita "YYYY-MM-DD" e timestamps "YYYY-MM-DDTHH:MM:SS"
    return date.fromisoformat(s[:10])


def iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None


@dataclass
class StageConfig:
    """Duração padrão e multiplicador de prioridade de uma etapa."""
    stage_name: str
    duration_days: int
    priority_multiplier: float = 1.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StageConfig":
        mult = row["priority_multiplier"]
        return cls(
            stage_name=row["stage_name"],
            duration_days=int(row["duration_days"]),
            priority_multiplier=float(mult) if mult is not None else 1.0,
        )


@dataclass
class ProductionStage:
    """Uma etapa do pipeline de um produto."""
    id: Optional[int]
    product_id: int
    stage_name: str
    stage_order: int
    status: str = "pendente"
    expected_date: Optional[date] = None
    actual_date: Optional[date] = None
    responsible_party: Optional[str] = None
    stylist_id: Optional[int] = None
    notes: Optional[str] = None
    version: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProductionStage":
        return cls(
            id=row["id"],
            product_id=row["product_id"],
            stage_name=row["stage_name"],
            stage_order=int(row["stage_order"]),
            status=row["status"],
            expected_date=parse_date(row["expected_date"]),
            actual_date=parse_date(row["actual_date"]),
            responsible_party=row["responsible_party"],
            stylist_id=row["stylist_id"],
            notes=row["notes"],
            version=int(row["version"] or 0),
        )


@dataclass
class Product:
    """Produto (entidade colaboradora, somente leitura para o motor)."""
    id: int
    code: str
    name: Optional[str] = None
    priority: Optional[str] = None
    status: str = "ativo"
    image_url: Optional[str] = None
    collection_id: Optional[int] = None
    client_id: Optional[int] = None
    stylist_id: Optional[int] = None
    created_at: Optional[str] = None


@dataclass
class ProductFile:
    id: int
    product_id: int
    file_name: str
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None


@dataclass
class ProductRecord:
    """Linha de produto com os nomes vindos dos joins (podem faltar)."""
    product: Product
    collection_name: Optional[str] = None
    client_name: Optional[str] = None
    stylist_name: Optional[str] = None


@dataclass
class ProductWithStage:
    """Snapshot desnormalizado consumido por Kanban, painéis e modo TV."""
    id: int
    code: str
    name: Optional[str]
    priority: Optional[str]
    status: str
    image_url: Optional[str]
    collection_id: Optional[int]
    client_id: Optional[int]
    stylist_id: Optional[int]
    collection_name: str
    client_name: str
    stylist_name: str
    created_at: Optional[str]
    current_stage: Optional[ProductionStage]
    stages: List[ProductionStage] = field(default_factory=list)
    files: List[ProductFile] = field(default_factory=list)

    @property
    def has_stage_data(self) -> bool:
        return self.current_stage is not None

    @property
    def is_complete(self) -> bool:
        return bool(self.stages) and all(s.status == "concluida" for s in self.stages)

    def stage(self, stage_name: str) -> Optional[ProductionStage]:
        for s in self.stages:
            if s.stage_name == stage_name:
                return s
        return None


@dataclass
class UrgentAlert:
    """Alerta derivado; recalculado a cada avaliação, nunca persistido."""
    product_id: int
    product_code: str
    product_name: Optional[str]
    collection_name: str
    client_name: str
    stylist_name: Optional[str]
    current_stage: str
    expected_date: date
    days_remaining: int
    severity: str
    is_overdue: bool
