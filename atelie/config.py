# atelie/config.py
"""
Configurações globais e valores padrão do motor de produção.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List


# Caminho padrão do banco de dados SQLite
DB_PATH = os.path.join(os.getcwd(), "atelie.db")


# Pipeline fixo de etapas (stage_order = posição + 1)
STAGE_ORDER: List[str] = [
    "Briefing Recebido",
    "Modelagem Técnica",
    "Prototipagem",
    "Envio para Aprovação",
    "Aprovado",
    "Mostruário e Entregue",
]

STAGE_SUBMISSION = "Envio para Aprovação"
STAGE_APPROVED = "Aprovado"
STAGE_PROTOTYPING = "Prototipagem"

# Status possíveis de uma etapa
STATUS_PENDING = "pendente"
STATUS_IN_PROGRESS = "em_andamento"
STATUS_DONE = "concluida"
STATUS_LATE = "atrasada"
STAGE_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_DONE, STATUS_LATE)

# Prioridades de produto; apenas as "amplificadoras" aplicam o multiplicador
PRIORITIES = ("baixa", "media", "alta", "urgente")
AMPLIFYING_PRIORITIES = ("alta", "urgente")

# Limites validados antes de persistir a configuração
DURATION_MIN = 1
DURATION_MAX = 30
MULTIPLIER_MIN = 0.1
MULTIPLIER_MAX = 5.0

# Rótulos usados quando o join não encontra a entidade relacionada
PLACEHOLDER_COLLECTION = "Sem coleção"
PLACEHOLDER_CLIENT = "Sem cliente"
PLACEHOLDER_STYLIST = "Sem estilista"


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    stage_durations: Dict[str, int] = field(default_factory=lambda: {
        "Briefing Recebido": 2,
        "Modelagem Técnica": 5,
        "Prototipagem": 7,
        "Envio para Aprovação": 3,
        "Aprovado": 2,
        "Mostruário e Entregue": 1,
    })
    priority_multiplier: float = 1.0
    tv_rotation_seconds: int = 15      # troca de visão no modo TV
    tv_products_per_stage: int = 5     # produtos listados por coluna no modo TV
    top_clients: int = 5
    timeline_size: int = 10


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()
