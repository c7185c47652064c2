# almoxarifado/domain/lotes.py
"""
Motor de consumo de lotes (PEPS por validade).

Um lote é um dicionário `{"quantidade": n, "validade": "AAAA-MM-DD" | None}`.
As funções aqui não alteram as listas recebidas: devolvem cópias novas.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from almoxarifado.exceptions import InsufficientStock, ValidationError

Numero = Union[int, float]
Lote = Dict[str, Any]


@dataclass
class LoteConsumido:
    validade: Optional[str]
    consumido: Numero

    def as_dict(self) -> Dict[str, Any]:
        return {"validade": self.validade, "consumido": self.consumido}


@dataclass
class ResultadoConsumo:
    lotes: List[Lote]
    lotes_consumidos: List[LoteConsumido] = field(default_factory=list)
    total: Numero = 0


def normalizar_quantidade(valor: Numero) -> Numero:
    """Floats inteiros viram int (5.0 -> 5); o resto fica como está."""
    if isinstance(valor, float) and valor.is_integer():
        return int(valor)
    return valor


def total_lotes(lotes: List[Lote]) -> Numero:
    return normalizar_quantidade(sum(l.get("quantidade") or 0 for l in lotes))


def _chave_validade(lote: Lote):
    validade = lote.get("validade")
    # sem validade vai para o fim
    return (validade is None, validade or "")


def consumir_lotes(lotes: List[Lote], quantidade: Numero) -> ResultadoConsumo:
    """
    Retira `quantidade` dos lotes, começando pela validade mais próxima.

    Lotes sem validade são consumidos por último e lotes zerados são pulados
    (mas permanecem na lista devolvida). Se a soma dos lotes não cobre a
    quantidade, levanta `InsufficientStock` antes de qualquer alteração.
    """
    disponivel = total_lotes(lotes)
    if quantidade > disponivel:
        raise InsufficientStock(disponivel, quantidade)

    novos = [dict(l) for l in lotes]
    ordem = sorted(range(len(novos)), key=lambda i: _chave_validade(novos[i]))

    restante = quantidade
    consumidos: List[LoteConsumido] = []
    for i in ordem:
        if restante <= 0:
            break
        lote = novos[i]
        qtd = lote.get("quantidade") or 0
        if qtd <= 0:
            continue
        tirar = min(restante, qtd)
        lote["quantidade"] = normalizar_quantidade(qtd - tirar)
        restante -= tirar
        consumidos.append(LoteConsumido(lote.get("validade"), normalizar_quantidade(tirar)))

    return ResultadoConsumo(lotes=novos, lotes_consumidos=consumidos, total=normalizar_quantidade(quantidade))


def adicionar_lote(lotes: List[Lote], quantidade: Numero, validade: Optional[str] = None) -> List[Lote]:
    """Soma a quantidade ao lote de mesma validade ou cria um lote novo."""
    novos = [dict(l) for l in lotes]
    for lote in novos:
        if lote.get("validade") == validade:
            lote["quantidade"] = normalizar_quantidade((lote.get("quantidade") or 0) + quantidade)
            return novos
    novos.append({"quantidade": normalizar_quantidade(quantidade), "validade": validade})
    return novos


def validade_mais_proxima(lotes: List[Lote]) -> Optional[str]:
    """Menor validade entre os lotes com saldo, ou None."""
    datas = [l["validade"] for l in lotes if l.get("validade") and (l.get("quantidade") or 0) > 0]
    return min(datas) if datas else None


def normalizar_validade(valor: Any) -> Optional[str]:
    """Validade como 'AAAA-MM-DD' (ou None). Aceita date, datetime ou texto ISO."""
    if valor is None or (isinstance(valor, str) and not valor.strip()):
        return None
    if isinstance(valor, datetime):
        return valor.date().isoformat()
    if isinstance(valor, date):
        return valor.isoformat()
    try:
        return date.fromisoformat(str(valor).strip()[:10]).isoformat()
    except ValueError:
        raise ValidationError(["Data de validade inválida"]) from None
