# almoxarifado/usecases/historico.py
"""
UC: histórico de entradas e saídas.

Filtros (todos puros, preservam a ordem recebida):
- filtrar_por_codigo: trecho do código de barras, sem diferenciar maiúsculas
- filtrar_por_dia: mesmo dia do calendário local (`data`, ou `criado_em` na
  falta dela), ignorando o horário
- filtrar_por_setor: trecho do setor destino (apenas saídas)

E o achatamento em linhas para exportação CSV.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.infra.repositories import EntradaRepo, SaidaRepo

Registro = Dict[str, Any]


def _para_datetime(valor: Any) -> Optional[datetime]:
    if valor is None:
        return None
    if hasattr(valor, "to_date"):
        valor = valor.to_date()
    if isinstance(valor, datetime):
        return valor
    if isinstance(valor, date):
        return datetime(valor.year, valor.month, valor.day)
    return None


def format_date(valor: Any) -> str:
    """Data/hora no formato brasileiro `dd/mm/aaaa, HH:MM`; vazio para None."""
    dt = _para_datetime(valor)
    if dt is None:
        return ""
    return dt.strftime("%d/%m/%Y, %H:%M")


def data_do_registro(registro: Registro) -> Any:
    return registro.get("data") or registro.get("criado_em")


def filtrar_por_codigo(registros: List[Registro], termo: str) -> List[Registro]:
    termo = (termo or "").strip().lower()
    if not termo:
        return list(registros)
    return [r for r in registros if termo in (r.get("codigo") or "").lower()]


def filtrar_por_setor(registros: List[Registro], termo: str) -> List[Registro]:
    termo = (termo or "").strip().lower()
    if not termo:
        return list(registros)
    return [r for r in registros if termo in (r.get("setor_destino") or "").lower()]


def filtrar_por_dia(registros: List[Registro], dia: Optional[date]) -> List[Registro]:
    if dia is None:
        return list(registros)
    if isinstance(dia, datetime):
        dia = dia.date()
    resultado = []
    for r in registros:
        dt = _para_datetime(data_do_registro(r))
        if dt is not None and dt.date() == dia:
            resultado.append(r)
    return resultado


def _fmt_lote(lote: Dict[str, Any]) -> str:
    return f"Val: {lote.get('validade') or 's/d'} (-{lote.get('consumido')})"


def linhas_exportacao_entradas(entradas: List[Registro]) -> List[Dict[str, Any]]:
    return [
        {
            "Código": e.get("codigo", ""),
            "Quantidade": e.get("quantidade"),
            "Validade": e.get("validade") or "",
            "Fornecedor": e.get("fornecedor") or "",
            "Observação": e.get("observacao") or "",
            "Data": format_date(data_do_registro(e)),
        }
        for e in entradas
    ]


def linhas_exportacao_saidas(saidas: List[Registro]) -> List[Dict[str, Any]]:
    return [
        {
            "Código": s.get("codigo", ""),
            "Quantidade": s.get("quantidade"),
            "Setor Destino": s.get("setor_destino") or "",
            "Retirado Por": s.get("retirado_por") or "",
            "Observação": s.get("observacao") or "",
            "Lotes": "\n".join(_fmt_lote(l) for l in s.get("lotes_consumidos") or []),
            "Data": format_date(data_do_registro(s)),
        }
        for s in saidas
    ]


def _mais_recentes(docs: List[Registro]) -> List[Registro]:
    docs.sort(key=lambda d: d["criado_em"], reverse=True)
    return docs


def listar_entradas(
    ctx: ContextoAplicacao, codigo: str = "", dia: Optional[date] = None
) -> List[Registro]:
    ctx.exigir(Permissao.VIEW_ENTRIES_HISTORY)
    docs = _mais_recentes(EntradaRepo(ctx.db_path).listar())
    return filtrar_por_dia(filtrar_por_codigo(docs, codigo), dia)


def listar_saidas(
    ctx: ContextoAplicacao, codigo: str = "", setor: str = "", dia: Optional[date] = None
) -> List[Registro]:
    ctx.exigir(Permissao.VIEW_EXITS_HISTORY)
    docs = _mais_recentes(SaidaRepo(ctx.db_path).listar())
    return filtrar_por_dia(filtrar_por_setor(filtrar_por_codigo(docs, codigo), setor), dia)
