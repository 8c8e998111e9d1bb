# marcenaria/adapters/planilha_loader.py
"""
Loader de planilhas (XLSX ou CSV) de cadastro de ITENS de estoque.

Essas funções:
- leem a planilha usando pandas;
- normalizam cabeçalhos (acentos, variações, sinônimos);
- retornam listas de dicionários com as chaves esperadas por ``ItemRepo.upsert``.

Observações:
- Preços aceitam formato brasileiro ("R$ 12,50").
- Linhas sem SKU ou sem nome são descartadas.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from marcenaria.adapters.parsers import parse_numero_br


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
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _safe_get(row, key):
    """Lê um valor da linha do pandas tratando NA como None."""
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    return val


def _to_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, float) and val.is_integer():
        val = int(val)
    s = str(val).strip()
    return s or None


_ALIASES = {
    "sku": "sku",
    "codigo": "sku",
    "cod": "sku",
    "referencia": "sku",

    "item": "nome",
    "nome": "nome",
    "material": "nome",
    "nome do item": "nome",
    "descricao": "nome",

    "categoria": "categoria",
    "grupo": "categoria",

    "unidade": "unidade",
    "unid": "unidade",
    "un": "unidade",

    "preco": "preco_unitario",
    "preco unit": "preco_unitario",
    "preco unitario": "preco_unitario",
    "valor unitario": "preco_unitario",

    "qtd": "qtd_atual",
    "qtd atual": "qtd_atual",
    "quantidade": "qtd_atual",
    "quantidade atual": "qtd_atual",
    "estoque": "qtd_atual",
    "estoque atual": "qtd_atual",

    "qtd minima": "qtd_minima",
    "quantidade minima": "qtd_minima",
    "estoque minimo": "qtd_minima",
    "minimo": "qtd_minima",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Renomeia colunas com base em sinônimos/variações."""
    ren: Dict[str, str] = {}
    for col in df.columns:
        canon = _ALIASES.get(_slug(col))
        if canon and canon not in ren.values():
            ren[col] = canon
    return df.rename(columns=ren)


def _read_any(path: str) -> pd.DataFrame:
    suf = Path(path).suffix.lower()
    if suf in (".csv", ".txt"):
        # separador detectado automaticamente (';' é o padrão das planilhas BR)
        return pd.read_csv(path, sep=None, engine="python", dtype=str)
    return pd.read_excel(path)


def load_itens(path: str) -> List[Dict[str, Any]]:
    """Lê uma planilha de ITENS e devolve dicionários normalizados."""
    df = _normalize_columns(_read_any(path))
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        sku = _to_str(_safe_get(row, "sku"))
        nome = _to_str(_safe_get(row, "nome"))
        if not sku or not nome:
            continue
        out.append({
            "sku": sku,
            "nome": nome,
            "categoria": _to_str(_safe_get(row, "categoria")),
            "unidade": (_to_str(_safe_get(row, "unidade")) or "UN").upper(),
            "preco_unitario": parse_numero_br(_safe_get(row, "preco_unitario")) or 0.0,
            "qtd_atual": parse_numero_br(_safe_get(row, "qtd_atual")) or 0.0,
            "qtd_minima": parse_numero_br(_safe_get(row, "qtd_minima")) or 0.0,
        })
    return out
