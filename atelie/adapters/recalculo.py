# atelie/adapters/recalculo.py
"""
Fronteira request/response do recálculo de cronograma.

Recebe o corpo da requisição (dict ou JSON) e devolve `(status, corpo)`:
- 200: recálculo executado (em lote, falhas por produto vêm em `failures`);
- 400: seletor inválido, JSON inválido ou configuração ausente;
- 404: produto inexistente;
- 500: qualquer outra falha, com `details`.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from atelie.config import DB_PATH
from atelie.domain.errors import ConfigurationMissing, InvalidSelector, ProductNotFound
from atelie.infra.logger import log_system_event
from atelie.usecases.cronograma import run_recalculate

INTERNAL_ERROR = "Erro interno do servidor"


def handle_recalculate_request(
    payload: Union[str, bytes, Mapping[str, Any]],
    db_path: str = DB_PATH,
    today: Optional[date] = None,
    timeout_seconds: Optional[float] = None,
) -> Tuple[int, Dict[str, Any]]:
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload or "{}")
        except ValueError as e:
            return 400, {"error": "JSON inválido", "details": str(e)}

    try:
        body = run_recalculate(payload, db_path=db_path, today=today, timeout_seconds=timeout_seconds)
    except InvalidSelector as e:
        return 400, {"error": str(e)}
    except ConfigurationMissing as e:
        return 400, {"error": str(e), "stage": e.stage_name}
    except ProductNotFound as e:
        return 404, {"error": str(e)}
    except Exception as e:
        log_system_event("recalculo_erro", {"error": str(e), "type": type(e).__name__}, level="error")
        return 500, {"error": INTERNAL_ERROR, "details": str(e)}
    return 200, body
