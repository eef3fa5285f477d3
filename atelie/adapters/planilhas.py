# atelie/adapters/planilhas.py
"""
Loader de planilhas de PRODUTOS (XLSX ou CSV).

Essas funções:
- leem a planilha usando pandas (openpyxl para .xlsx);
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas pelo caso de uso
  de importação.

Observações:
- Cliente, coleção e estilista chegam como NOMES; a resolução para ids
  fica com o caso de uso.
- Prioridade é normalizada para baixa/media/alta/urgente (None se vazia
  ou desconhecida).
"""

from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Optional

import pandas as pd

from atelie.config import PRIORITIES


# ---------------------------
# utilitários de normalização
# ---------------------------

def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


def _safe_get(row, key) -> Optional[str]:
    """Valor da célula como texto aparado (None para NA ou vazio)."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    s = str(val).strip()
    return s or None


def normalize_priority(val: Optional[str]) -> Optional[str]:
    """'Média' → 'media', 'URGENTE' → 'urgente'; valores fora da lista → None."""
    if val is None:
        return None
    s = _slug(val)
    return s if s in PRIORITIES else None


_ALIASES = {
    "codigo": "codigo",
    "cod": "codigo",
    "code": "codigo",
    "referencia": "codigo",
    "ref": "codigo",

    "nome": "nome",
    "name": "nome",
    "produto": "nome",
    "descricao": "nome",
    "nome do produto": "nome",

    "prioridade": "prioridade",
    "priority": "prioridade",

    "cliente": "cliente",
    "client": "cliente",
    "marca": "cliente",

    "colecao": "colecao",
    "collection": "colecao",

    "temporada": "temporada",
    "estacao": "temporada",
    "season": "temporada",

    "estilista": "estilista",
    "stylist": "estilista",

    "imagem": "imagem",
    "image": "imagem",
    "foto": "imagem",
    "url imagem": "imagem",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    return df.rename(columns={col: _ALIASES.get(_slug(col), _slug(col)) for col in df.columns})


def read_sheet(path: str) -> pd.DataFrame:
    """Lê .xlsx/.xls via read_excel e o resto como CSV (`,` ou `;`), tudo como texto."""
    ext = os.path.splitext(path)[1].lower()
    if ext in (".xlsx", ".xls"):
        df = pd.read_excel(path, dtype="string")
    else:
        with open(path, encoding="utf-8") as f:
            header = f.readline()
        sep = ";" if header.count(";") > header.count(",") else ","
        df = pd.read_csv(path, dtype="string", sep=sep)
    return _normalize_columns(df)


# ---------------------------
# loader público
# ---------------------------

def load_produtos(path: str) -> List[Dict[str, Any]]:
    """Lê a planilha de produtos.

    Campos de saída (chaves do dict por linha):
      - linha: número da linha na planilha (cabeçalho = 1)
      - codigo, nome: str | None
      - prioridade: baixa/media/alta/urgente | None
      - prioridade_raw: texto original da célula (para reportar inválidos)
      - cliente, colecao, temporada, estilista: nomes | None
      - imagem: URL | None
    """
    df = read_sheet(path)
    out: List[Dict[str, Any]] = []
    for idx, row in df.iterrows():
        raw_priority = _safe_get(row, "prioridade")
        out.append({
            "linha": int(idx) + 2,
            "codigo": _safe_get(row, "codigo"),
            "nome": _safe_get(row, "nome"),
            "prioridade": normalize_priority(raw_priority),
            "prioridade_raw": raw_priority,
            "cliente": _safe_get(row, "cliente"),
            "colecao": _safe_get(row, "colecao"),
            "temporada": _safe_get(row, "temporada"),
            "estilista": _safe_get(row, "estilista"),
            "imagem": _safe_get(row, "imagem"),
        })
    return out
