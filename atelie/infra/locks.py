# atelie/infra/locks.py
"""
Travas por produto.

Avançar, mover e editar etapas do mesmo produto nunca se intercalam
dentro do processo; produtos diferentes seguem em paralelo. Entre
processos, a serialização fica a cargo do BEGIN IMMEDIATE e da checagem
de versão das linhas (ver `StageRepo.save`).
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple


class ProductLocks:
    """Registro de `threading.Lock` por (banco, produto)."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, int], threading.Lock] = {}

    def lock_for(self, db_path: str, product_id: int) -> threading.Lock:
        key = (str(db_path), int(product_id))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, db_path: str, product_id: int) -> Iterator[None]:
        lock = self.lock_for(db_path, product_id)
        with lock:
            yield


# Instância global usada pelos casos de uso
PRODUCT_LOCKS = ProductLocks()
