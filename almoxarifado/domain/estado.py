# almoxarifado/domain/estado.py
"""
Estados derivados do estoque: estoque baixo, vencimentos e status por item.

Tudo é recalculado a partir dos itens a cada leitura; nada aqui é gravado.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from .lotes import normalizar_quantidade

# janela curta usada no status da planilha gerencial
DIAS_PERTO_VENCIMENTO = 7

DataLike = Union[str, date, datetime, None]


@dataclass
class InfoValidade:
    vencendo: bool
    vencido: bool
    dias_para_vencer: Optional[int]


def _para_data(valor: DataLike) -> Optional[date]:
    if valor is None or valor == "":
        return None
    if hasattr(valor, "to_date"):
        valor = valor.to_date()
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor)[:10])
    except ValueError:
        return None


def _hoje(agora: Optional[datetime | date]) -> date:
    if agora is None:
        return date.today()
    if isinstance(agora, datetime):
        return agora.date()
    return agora


def classificar_validade(validade: DataLike, janela_dias: int, agora: Optional[datetime | date] = None) -> InfoValidade:
    """
    Classifica uma validade em relação ao dia de hoje (sem horário).

    `dias_para_vencer` negativo indica lote vencido; `vencendo` inclui o
    limite da janela.
    """
    d = _para_data(validade)
    if d is None:
        return InfoValidade(vencendo=False, vencido=False, dias_para_vencer=None)
    dias = (d - _hoje(agora)).days
    vencido = dias < 0
    return InfoValidade(vencendo=not vencido and dias <= janela_dias, vencido=vencido, dias_para_vencer=dias)


def formatar_validade(validade: DataLike) -> str:
    if not validade:
        return "Sem validade"
    d = _para_data(validade)
    if d is None:
        return "Data inválida"
    return d.strftime("%d/%m/%Y")


def limite_do_item(item: Dict[str, Any], limite_padrao: float) -> float:
    minimo = item.get("estoque_minimo")
    if isinstance(minimo, (int, float)) and not isinstance(minimo, bool) and minimo > 0:
        return minimo
    return limite_padrao


def itens_estoque_baixo(itens: List[Dict[str, Any]], limite_padrao: float) -> List[Dict[str, Any]]:
    """Itens com quantidade <= limite (do item ou padrão), na ordem recebida."""
    return [i for i in itens if (i.get("quantidade") or 0) <= limite_do_item(i, limite_padrao)]


def itens_vencendo(
    itens: List[Dict[str, Any]],
    janela_dias: int,
    agora: Optional[datetime | date] = None,
) -> List[Dict[str, Any]]:
    """
    Itens com pelo menos um lote com saldo vencido ou vencendo na janela.

    Cada resultado é uma cópia do item acrescida de `validade` (a mais
    próxima entre os lotes qualificados), `dias_para_vencer`, `vencido`,
    `quantidade_vencendo` e `situacao` ("VENCIDO" ou "N dias").
    Ordenado pela validade mais próxima.
    """
    hoje = _hoje(agora)
    resultado: List[Dict[str, Any]] = []
    for item in itens:
        qualificados = []
        for lote in item.get("lotes") or []:
            if (lote.get("quantidade") or 0) <= 0:
                continue
            d = _para_data(lote.get("validade"))
            if d is None:
                continue
            if (d - hoje).days <= janela_dias:
                qualificados.append((d, lote["quantidade"]))
        if not qualificados:
            continue
        validade = min(d for d, _ in qualificados)
        dias = (validade - hoje).days
        vencido = dias < 0
        resultado.append({
            **item,
            "validade": validade.isoformat(),
            "dias_para_vencer": dias,
            "vencido": vencido,
            "quantidade_vencendo": normalizar_quantidade(sum(q for _, q in qualificados)),
            "situacao": "VENCIDO" if vencido else f"{dias} dias",
        })
    resultado.sort(key=lambda r: r["validade"])
    return resultado


def status_item(item: Dict[str, Any], limite_padrao: float, agora: Optional[datetime | date] = None) -> str:
    """Status usado na planilha gerencial de estoque."""
    baixo = (item.get("quantidade") or 0) <= limite_do_item(item, limite_padrao)
    info = classificar_validade(item.get("validade"), DIAS_PERTO_VENCIMENTO, agora)
    perto = info.dias_para_vencer is not None and 0 <= info.dias_para_vencer <= DIAS_PERTO_VENCIMENTO

    if baixo and perto:
        return "Estoque baixo e perto do vencimento"
    if baixo:
        return "Estoque baixo"
    if info.vencido:
        return "Vencido"
    if perto:
        return "Perto do vencimento"
    return "OK"
