# almoxarifado/usecases/relatorios.py
"""
UC: painel e relatórios.

- painel(): números do dia, movimentações recentes, estoque baixo e vencimentos
- relatorio_estoque_baixo(), relatorio_vencimentos()
- relatorio_periodo(): totais de entradas/saídas no intervalo, por categoria,
  fornecedor e setor destino
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.estado import classificar_validade, itens_estoque_baixo, itens_vencendo, limite_do_item
from almoxarifado.domain.lotes import normalizar_quantidade
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.infra.repositories import EntradaRepo, SaidaRepo


def _intervalo_dia(dia: date):
    inicio = datetime.combine(dia, time.min)
    return inicio, inicio + timedelta(days=1)


def _soma(registros: List[Dict[str, Any]]):
    return normalizar_quantidade(sum(r.get("quantidade") or 0 for r in registros))


def painel(ctx: ContextoAplicacao, hoje: Optional[date] = None) -> Dict[str, Any]:
    ctx.exigir(Permissao.VIEW_DASHBOARD)
    hoje = hoje or date.today()
    inicio, fim = _intervalo_dia(hoje)
    entradas, saidas = EntradaRepo(ctx.db_path), SaidaRepo(ctx.db_path)
    itens = ctx.recarregar_itens()
    limite = ctx.config.recentes_limite

    entradas_hoje = entradas.listar_periodo(inicio, fim)
    saidas_hoje = saidas.listar_periodo(inicio, fim)
    return {
        "total_itens": len(itens),
        "quantidade_total": _soma(itens),
        "entradas_hoje": len(entradas_hoje),
        "saidas_hoje": len(saidas_hoje),
        "quantidade_entrada_hoje": _soma(entradas_hoje),
        "quantidade_saida_hoje": _soma(saidas_hoje),
        "estoque_baixo": itens_estoque_baixo(itens, ctx.config.estoque_baixo_limite),
        "vencendo": itens_vencendo(itens, ctx.config.vencimento_proximo_dias, hoje),
        "entradas_recentes": entradas.listar_recentes(limite),
        "saidas_recentes": saidas.listar_recentes(limite),
    }


def relatorio_estoque_baixo(ctx: ContextoAplicacao) -> List[Dict[str, Any]]:
    """Itens em estoque baixo, do menor saldo para o maior."""
    ctx.exigir(Permissao.VIEW_REPORTS)
    limite = ctx.config.estoque_baixo_limite
    itens = sorted(itens_estoque_baixo(ctx.recarregar_itens(), limite), key=lambda i: i.get("quantidade") or 0)
    return [
        {
            "codigo": i.get("codigo", ""),
            "nome": i.get("nome", ""),
            "quantidade": i.get("quantidade") or 0,
            "limite": limite_do_item(i, limite),
            "unidade": i.get("unidade", ""),
        }
        for i in itens
    ]


def relatorio_vencimentos(
    ctx: ContextoAplicacao, janela_dias: Optional[int] = None, hoje: Optional[date] = None
) -> List[Dict[str, Any]]:
    ctx.exigir(Permissao.VIEW_REPORTS)
    janela = ctx.config.vencimento_proximo_dias if janela_dias is None else janela_dias
    return [
        {
            "codigo": i.get("codigo", ""),
            "nome": i.get("nome", ""),
            "validade": i["validade"],
            "quantidade_vencendo": i["quantidade_vencendo"],
            "situacao": i["situacao"],
        }
        for i in itens_vencendo(ctx.recarregar_itens(), janela, hoje)
    ]


def relatorio_periodo(ctx: ContextoAplicacao, inicio: date, fim: date) -> Dict[str, Any]:
    """Estatísticas do catálogo e das movimentações entre `inicio` e `fim` (inclusive)."""
    ctx.exigir(Permissao.VIEW_REPORTS)
    de = datetime.combine(inicio, time.min)
    ate = datetime.combine(fim, time.min) + timedelta(days=1)
    entradas = EntradaRepo(ctx.db_path).listar_periodo(de, ate)
    saidas = SaidaRepo(ctx.db_path).listar_periodo(de, ate)
    itens = ctx.recarregar_itens()

    por_setor: Dict[str, float] = defaultdict(float)
    for s in saidas:
        por_setor[s.get("setor_destino") or "-"] += s.get("quantidade") or 0

    validades = [classificar_validade(i.get("validade"), ctx.config.vencimento_proximo_dias) for i in itens]
    return {
        "periodo": f"{inicio.isoformat()} a {fim.isoformat()}",
        "total_itens": len(itens),
        "quantidade_total": _soma(itens),
        "estoque_baixo": len(itens_estoque_baixo(itens, ctx.config.estoque_baixo_limite)),
        "vencendo": sum(1 for v in validades if v.vencendo),
        "vencidos": sum(1 for v in validades if v.vencido),
        "total_entradas": _soma(entradas),
        "total_saidas": _soma(saidas),
        "por_categoria": dict(Counter(i.get("categoria") or "Sem categoria" for i in itens)),
        "por_fornecedor": dict(Counter(i.get("fornecedor") or "Sem fornecedor" for i in itens)),
        "saidas_por_setor": {k: normalizar_quantidade(v) for k, v in por_setor.items()},
    }
