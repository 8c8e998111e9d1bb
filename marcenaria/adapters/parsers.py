"""
Utilidades de parsing para valores monetários e quantidades.

Este módulo interpreta strings no formato tipicamente encontrado nas
planilhas de cadastro e nos argumentos da linha de comando (por exemplo,
"R$ 1.234,56" ou "12,5"). O objetivo é extrair de forma robusta o valor
numérico, aceitando vírgula ou ponto como separador decimal.
"""

from __future__ import annotations

import re
from typing import Optional

_NUM_RE = re.compile(r"[-+]?\d[\d.,]*")


def parse_numero_br(txt) -> Optional[float]:
    """Interpreta um número em formato brasileiro ou internacional.

    Regras:
        - prefixos como ``R$`` e espaços são ignorados;
        - com vírgula e ponto, o último separador é o decimal;
        - só vírgula: vírgula é decimal;
        - só pontos: mais de um ponto indica milhar.

    Exemplos:
        "R$ 1.234,56" → 1234.56
        "12,5"        → 12.5
        "1,234.5"     → 1234.5
        "1.000.000"   → 1000000.0

    Args:
        txt: Texto (ou número) a ser interpretado.

    Returns:
        O valor como float, ou None se não houver número.
    """
    if txt is None:
        return None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return float(txt)
    s = str(txt).strip()
    if not s:
        return None
    m = _NUM_RE.search(s)
    if not m:
        return None
    num = m.group(0).rstrip(".,")
    if "," in num and "." in num:
        if num.rfind(",") > num.rfind("."):
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif "," in num:
        num = num.replace(".", "").replace(",", ".")
    elif num.count(".") > 1:
        num = num.replace(".", "")
    try:
        return float(num)
    except ValueError:
        return None


def formata_moeda_br(valor: Optional[float]) -> str:
    """Formata como moeda brasileira: 1234.5 → ``R$ 1.234,50``."""
    v = float(valor or 0.0)
    return "R$ " + f"{v:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def formata_numero_br(valor: Optional[float]) -> str:
    v = float(valor or 0.0)
    if v.is_integer():
        return f"{int(v):,}".replace(",", ".")
    return f"{v:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
