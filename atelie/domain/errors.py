# atelie/domain/errors.py
"""
Exceções do domínio de produção.

Validações (seletor inválido, configuração ausente) são rejeitadas na
fronteira; falhas por item em operações em lote são agregadas no
resumo do recálculo.
"""

from __future__ import annotations

from typing import Any, Optional


class AtelieError(Exception):
    """Erro base do motor de produção."""


class ConfigurationMissing(AtelieError):
    """Etapa sem linha em `stage_config`; o cronograma não pode ser calculado."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        super().__init__(f"Configuração ausente para a etapa '{stage_name}'")


class NoNextStage(AtelieError):
    """Avanço solicitado além da última etapa do pipeline."""

    def __init__(self, product_id: int, stage_name: Optional[str] = None):
        self.product_id = product_id
        self.stage_name = stage_name
        super().__init__(f"Produto {product_id} já está na última etapa ({stage_name})")


class InvalidSelector(AtelieError):
    """Recálculo chamado sem seletor ou com mais de um seletor."""


class StageNotFound(AtelieError):
    def __init__(self, product_id: Any, stage: Any):
        self.product_id = product_id
        self.stage = stage
        super().__init__(f"Etapa '{stage}' não encontrada para o produto {product_id}")


class ProductNotFound(AtelieError):
    def __init__(self, product_id: Any):
        self.product_id = product_id
        super().__init__(f"Produto {product_id} não encontrado")


class InvalidStatus(AtelieError):
    def __init__(self, status: Any):
        self.status = status
        super().__init__(f"Status de etapa inválido: {status!r}")


class InvalidConfigValue(AtelieError):
    """Valor fora dos limites aceitos pelo editor de configuração."""


class ConcurrentModification(AtelieError):
    """Linha de etapa alterada por outra operação entre a leitura e a escrita."""

    def __init__(self, stage_id: int):
        self.stage_id = stage_id
        super().__init__(f"Etapa {stage_id} foi modificada concorrentemente")


class PartialRecalculationFailure(AtelieError):
    """Recálculo em lote concluído com falhas em parte dos produtos.

    O recálculo não levanta esta exceção por conta própria: o resumo
    (`RecalculationSummary`) é devolvido com as falhas. Chamadores que
    precisem tratar o caso como erro podem usar `summary.raise_for_failures()`.
    """

    def __init__(self, summary: Any):
        self.summary = summary
        super().__init__(
            f"{len(summary.failures)} produto(s) falharam; {summary.succeeded} recalculados"
        )
