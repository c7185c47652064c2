"""
Utilidades de parsing para valores digitados ou lidos de planilhas.

- parse_quantidade_unidade("5,5 KG") -> (5.5, "KG")
- parse_quantidade("1.234,5")        -> 1234.5
- parse_data("31/12/2025")           -> "2025-12-31"
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional, Tuple

_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)*")
_FORMATOS_DATA = ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%d/%m/%y")


def _para_float(trecho: str) -> float:
    # "1.234,5" e "1,234.5": o último separador é o decimal
    if "," in trecho and "." in trecho:
        if trecho.rfind(",") > trecho.rfind("."):
            trecho = trecho.replace(".", "").replace(",", ".")
        else:
            trecho = trecho.replace(",", "")
    else:
        trecho = trecho.replace(",", ".")
        if trecho.count(".") > 1:
            raise ValueError(trecho)
    return float(trecho)


def parse_quantidade_unidade(txt: Any) -> Tuple[Optional[float], Optional[str]]:
    """Interpreta "<valor> <unidade>", com vírgula ou ponto decimal.

    Exemplos:
        "5,5 kg" -> (5.5, "KG")
        "12"     -> (12.0, None)
        "abc"    -> (None, None)
    """
    if txt is None:
        return None, None
    if isinstance(txt, (int, float)) and not isinstance(txt, bool):
        return float(txt), None
    partes = str(txt).strip().split()
    if not partes:
        return None, None
    num = None
    m = _NUM_RE.fullmatch(partes[0])
    if m:
        try:
            num = _para_float(m.group(0))
        except ValueError:
            num = None
    unidade = partes[1].upper() if len(partes) >= 2 else None
    return num, unidade


def parse_quantidade(txt: Any) -> Optional[float]:
    return parse_quantidade_unidade(txt)[0]


def parse_data(txt: Any) -> Optional[str]:
    """Data em dd/mm/aaaa ou ISO -> "YYYY-MM-DD"; None quando vazia ou inválida."""
    if txt is None:
        return None
    if isinstance(txt, datetime):
        return txt.date().isoformat()
    if isinstance(txt, date):
        return txt.isoformat()
    s = str(txt).strip()
    if not s:
        return None
    # "2025-12-31 00:00:00" vindo de planilhas
    s = s.split(" ")[0].split("T")[0]
    for fmt in _FORMATOS_DATA:
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    return None
