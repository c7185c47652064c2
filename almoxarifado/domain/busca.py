# almoxarifado/domain/busca.py
"""
Busca tolerante a erros de digitação no catálogo de itens.

Compara textos sem acento e sem pontuação; quando não há correspondência
direta usa a similaridade de Levenshtein (1 = idêntico, 0 = nada em comum).
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, Iterable, List, Sequence

CAMPOS_BUSCA = ("nome", "codigo", "categoria")
SIMILARIDADE_MINIMA = 0.6

_NAO_PALAVRA = re.compile(r"[^\w\s]")


def normalizar(texto: Any) -> str:
    """Minúsculas, sem acentos e sem caracteres especiais."""
    if not texto:
        return ""
    s = unicodedata.normalize("NFD", str(texto).lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return _NAO_PALAVRA.sub("", s).strip()


def _levenshtein(a: str, b: str) -> int:
    anterior = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        atual = [i]
        for j, cb in enumerate(b, start=1):
            custo = 0 if ca == cb else 1
            atual.append(min(anterior[j] + 1, atual[j - 1] + 1, anterior[j - 1] + custo))
        anterior = atual
    return anterior[-1]


def similaridade(a: Any, b: Any) -> float:
    s1, s2 = normalizar(a), normalizar(b)
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if s1 in s2 or s2 in s1:
        return min(len(s1), len(s2)) / max(len(s1), len(s2))
    return 1 - _levenshtein(s1, s2) / max(len(s1), len(s2))


def fuzzy_match(texto: Any, termo: Any, minimo: float = SIMILARIDADE_MINIMA) -> bool:
    if not texto or not termo:
        return False

    t = normalizar(texto)
    q = normalizar(termo)
    if q in t:
        return True

    palavras_q = q.split()
    palavras_t = t.split()
    if palavras_q and all(any(pt in pq or pq in pt for pt in palavras_t) for pq in palavras_q):
        return True

    if similaridade(texto, termo) >= minimo:
        return True

    return any(similaridade(pt, pq) >= minimo for pq in palavras_q for pt in palavras_t)


def fuzzy_search(
    item: Dict[str, Any],
    termo: str,
    campos: Sequence[str] = CAMPOS_BUSCA,
    minimo: float = SIMILARIDADE_MINIMA,
) -> bool:
    if not termo or not item:
        return False
    return any(item.get(c) and fuzzy_match(str(item[c]), termo, minimo) for c in campos)


def ordenar_por_relevancia(
    itens: Iterable[Dict[str, Any]], termo: str, campos: Sequence[str] = CAMPOS_BUSCA
) -> List[Dict[str, Any]]:
    itens = list(itens)
    if not termo:
        return itens

    def _nota(item):
        return max((similaridade(str(item[c]), termo) for c in campos if item.get(c)), default=0.0)

    return sorted(itens, key=_nota, reverse=True)


def buscar_itens(itens: Iterable[Dict[str, Any]], termo: str) -> List[Dict[str, Any]]:
    """Filtra e ordena o catálogo pelo termo digitado."""
    if not termo:
        return list(itens)
    return ordenar_por_relevancia([i for i in itens if fuzzy_search(i, termo)], termo)
