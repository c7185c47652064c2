# almoxarifado/usecases/ajustes.py
"""
UC: ajuste manual de estoque (inventário).

O usuário informa a quantidade que viu na tela (`quantidade_anterior`) e a
quantidade contada (`quantidade_nova`). Se o item mudou nesse meio tempo o
ajuste é recusado. Aumentos vão para o lote sem validade; reduções consomem
os lotes por validade.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.lotes import (
    adicionar_lote, consumir_lotes, normalizar_quantidade, total_lotes, validade_mais_proxima,
)
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.exceptions import AlmoxarifadoError, ValidationError
from almoxarifado.infra.logger import log_system_event, log_transaction
from almoxarifado.infra.repositories import AjusteRepo, ItemRepo
from .auditoria import registrar_auditoria
from .transacao import atualizar_item_com_registro

TOLERANCIA = 0.01


def _numero(valor: Any) -> bool:
    return isinstance(valor, (int, float)) and not isinstance(valor, bool)


def _novos_lotes(lotes: List[Dict[str, Any]], anterior, nova) -> List[Dict[str, Any]]:
    diferenca = nova - anterior
    if diferenca > 0:
        return adicionar_lote(lotes, diferenca, None)
    if diferenca < 0:
        reduzir = -diferenca
        if total_lotes(lotes) >= reduzir:
            return consumir_lotes(lotes, reduzir).lotes
        # lotes não cobrem a redução: zera todos e deixa só o saldo novo sem validade
        zerados = [{**l, "quantidade": 0} for l in lotes]
        return adicionar_lote(zerados, nova, None) if nova > 0 else zerados
    if not lotes and nova > 0:
        return adicionar_lote([], nova, None)
    return lotes


def registrar_ajuste(ctx: ContextoAplicacao, dados: Dict[str, Any]) -> str:
    """Aplica o ajuste no item e grava o histórico. Devolve o id do ajuste."""
    usuario = ctx.exigir(Permissao.ADJUST_STOCK)
    item_id = dados.get("item_id")
    anterior = dados.get("quantidade_anterior")
    nova = dados.get("quantidade_nova")
    motivo = (dados.get("motivo") or "").strip()

    erros = []
    if not item_id:
        erros.append("ID do item é obrigatório")
    if not motivo:
        erros.append("Motivo do ajuste é obrigatório")
    if not _numero(anterior) or not _numero(nova):
        erros.append("Quantidades devem ser números válidos")
    elif nova < 0:
        erros.append("Quantidade não pode ser negativa")
    if erros:
        raise ValidationError(erros)

    def _calcular(item):
        atual = item.get("quantidade") or 0
        if abs(anterior - atual) > TOLERANCIA:
            raise AlmoxarifadoError(
                f"Quantidade anterior informada ({anterior}) não corresponde à quantidade atual "
                f"({atual}). Por favor, atualize os dados e tente novamente."
            )
        lotes = _novos_lotes(item.get("lotes") or [], anterior, nova)
        patch = {"quantidade": normalizar_quantidade(nova), "lotes": lotes, "validade": validade_mais_proxima(lotes)}
        rec = {
            "item_id": item_id,
            "item_nome": item.get("nome", ""),
            "item_codigo": item.get("codigo", ""),
            "quantidade_anterior": normalizar_quantidade(anterior),
            "quantidade_nova": normalizar_quantidade(nova),
            "diferenca": normalizar_quantidade(nova - anterior),
            "motivo": motivo,
            "observacao": (dados.get("observacao") or "").strip(),
            "usuario": usuario.email,
        }
        return patch, rec

    try:
        _, rec, rec_id = atualizar_item_com_registro(
            ItemRepo(ctx.db_path), item_id, _calcular, ctx.config.max_tentativas_transacao, AjusteRepo(ctx.db_path)
        )
        registrar_auditoria(ctx.db_path, "stock/adjust", usuario.email, {"ajuste_id": rec_id, **rec})
        log_transaction("ajuste", rec, result=rec_id)
        ctx.invalidar_itens()
        return rec_id
    except Exception as e:
        log_transaction("ajuste", {"item_id": item_id}, error=str(e))
        log_system_event("ajuste_error", {"item_id": item_id, "error": str(e)}, level="error")
        raise


def listar_ajustes(ctx: ContextoAplicacao, item_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """Ajustes mais recentes primeiro, opcionalmente de um item só."""
    ctx.exigir(Permissao.ADJUST_STOCK)
    repo = AjusteRepo(ctx.db_path)
    docs = repo.store.get_by_field(repo.colecao, "item_id", item_id) if item_id else repo.listar()
    docs.sort(key=lambda d: d["criado_em"], reverse=True)
    return docs
