# almoxarifado/adapters/planilhas.py
"""
Loader para planilhas (XLSX) de ENTRADAS.

- lê a planilha com pandas (tudo como texto);
- normaliza cabeçalhos (acentos, variações, sinônimos);
- devolve dicionários no formato aceito por `registrar_entrada`.

Quantidades viram número (None quando ilegíveis, para a validação acusar
a linha); datas viram ISO (YYYY-MM-DD).
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

import pandas as pd

from .parsers import parse_data, parse_quantidade_unidade


def _slug(s: str) -> str:
    """Normaliza cabeçalhos: minúsculas, sem acentos, sem não-alfanumérico."""
    if s is None:
        return ""
    s = str(s).strip().lower()
    acentos = dict(zip("áàâãäéèêëíìîïóòôõöúùûüç", "aaaaaeeeeiiiiooooouuuuc"))
    s = "".join(acentos.get(ch, ch) for ch in s)
    s = re.sub(r"[^a-z0-9]+", " ", s)
    return re.sub(r"\s+", " ", s).strip()


ALIASES = {
    "codigo": "codigo",
    "cod": "codigo",
    "codigo de barras": "codigo",
    "barcode": "codigo",

    "nome": "nome",
    "item": "nome",
    "descricao": "nome",
    "produto": "nome",

    "quantidade": "quantidade",
    "qtde": "quantidade",
    "qtd": "quantidade",

    "validade": "validade",
    "data validade": "validade",
    "data de validade": "validade",
    "vencimento": "validade",

    "fornecedor": "fornecedor",
    "representante": "fornecedor",

    "observacao": "observacao",
    "observacoes": "observacao",
    "obs": "observacao",

    "categoria": "categoria",
    "unidade": "unidade",
    "un": "unidade",
    "local": "local",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.rename(columns={c: ALIASES.get(_slug(c), _slug(c)) for c in df.columns})


def _safe_get(row, key):
    val = row.get(key)
    if val is None or pd.isna(val):
        return None
    val = str(val).strip()
    return val or None


def load_entradas_from_xlsx(path: str) -> List[Dict[str, Any]]:
    """Lê XLSX de ENTRADAS.

    Chaves por linha: codigo, nome, quantidade, validade, fornecedor,
    observacao, categoria, unidade, local. Linhas totalmente vazias são
    ignoradas.
    """
    df = _normalize_columns(pd.read_excel(path, dtype="string"))
    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        rec = {k: _safe_get(row, k) for k in ("codigo", "nome", "fornecedor", "observacao", "categoria", "local")}
        quantidade, unidade_qtd = parse_quantidade_unidade(_safe_get(row, "quantidade"))
        rec["quantidade"] = quantidade
        rec["unidade"] = (_safe_get(row, "unidade") or unidade_qtd or "").upper() or None
        rec["validade"] = parse_data(_safe_get(row, "validade"))
        if all(v is None for v in rec.values()):
            continue
        out.append({k: v for k, v in rec.items() if v is not None or k == "quantidade"})
    return out
