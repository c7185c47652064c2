# almoxarifado/usecases/pedidos.py
"""
UC: pedidos de material.

Ciclo de vida: pendente -> aprovado | rejeitado; aprovado -> finalizado.
Finalizar um pedido dá baixa no estoque criando uma saída por linha de item
cadastrado (linhas avulsas, sem item_id, são ignoradas). O pedido é marcado
como finalizado, condicionado à versão lida, antes de qualquer saída; uma
segunda finalização concorrente é recusada sem mexer no estoque.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Optional

from almoxarifado.config import SETOR_PADRAO_PEDIDO
from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.lotes import normalizar_quantidade
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.domain.validadores import is_valid_quantidade
from almoxarifado.exceptions import (
    AlmoxarifadoError, ConflitoConcorrencia, InsufficientStock, ItemNaoEncontrado, TransicaoInvalida,
    ValidationError,
)
from almoxarifado.infra.logger import log_system_event, log_transaction
from almoxarifado.infra.repositories import ItemRepo, PedidoRepo
from .auditoria import registrar_auditoria
from .registrar_saida import registrar_saida

PENDENTE = "pendente"
APROVADO = "aprovado"
REJEITADO = "rejeitado"
FINALIZADO = "finalizado"

TRANSICOES = {
    PENDENTE: {APROVADO, REJEITADO},
    APROVADO: {FINALIZADO},
    REJEITADO: set(),
    FINALIZADO: set(),
}


def _linha(dados: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "item_id": dados.get("item_id"),
        "codigo": (dados.get("codigo") or "").strip(),
        "nome": (dados.get("nome") or "").strip(),
        "quantidade": dados.get("quantidade"),
        "personalizado": bool(dados.get("personalizado")) or not dados.get("item_id"),
    }


def criar_pedido(
    ctx: ContextoAplicacao,
    itens: List[Dict[str, Any]],
    setor_destino: str = "",
    observacao: str = "",
) -> str:
    usuario = ctx.exigir(Permissao.CREATE_ORDER)
    linhas = [_linha(i) for i in itens]

    erros = []
    if not linhas:
        erros.append("Adicione pelo menos um item ao pedido")
    for n, l in enumerate(linhas, start=1):
        if not l["nome"] and not l["codigo"] and not l["item_id"]:
            erros.append(f"Item {n}: informe o item")
        if not is_valid_quantidade(l["quantidade"]):
            erros.append(f"Item {n}: quantidade deve ser um número positivo")
    if erros:
        raise ValidationError(erros)

    repo_itens = ItemRepo(ctx.db_path)
    for l in linhas:
        if l["personalizado"]:
            continue
        item = repo_itens.obter(l["item_id"])
        if item is None:
            raise ItemNaoEncontrado()
        l["codigo"] = l["codigo"] or item.get("codigo", "")
        l["nome"] = l["nome"] or item.get("nome", "")

    pedido_id = PedidoRepo(ctx.db_path).inserir({
        "itens": linhas,
        "setor_destino": (setor_destino or "").strip(),
        "observacao": (observacao or "").strip(),
        "status": PENDENTE,
        "solicitado_por": usuario.email,
    })
    registrar_auditoria(ctx.db_path, "order/create", usuario.email, {"pedido_id": pedido_id})
    log_transaction("pedido_criar", {"pedido_id": pedido_id, "linhas": len(linhas)}, result=pedido_id)
    return pedido_id


def listar_pedidos(ctx: ContextoAplicacao, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """Gestores veem todos os pedidos; os demais, apenas os próprios."""
    usuario = ctx.exigir(Permissao.CREATE_ORDER)
    repo = PedidoRepo(ctx.db_path)
    docs = repo.por_status(status) if status else repo.listar()
    if not usuario.pode(Permissao.MANAGE_ORDERS):
        docs = [d for d in docs if d.get("solicitado_por") == usuario.email]
    docs.sort(key=lambda d: d["criado_em"], reverse=True)
    return docs


def _obter_pedido(repo: PedidoRepo, pedido_id: str) -> Dict[str, Any]:
    pedido = repo.obter(pedido_id)
    if pedido is None:
        raise AlmoxarifadoError("Pedido não encontrado")
    return pedido


def atualizar_status(ctx: ContextoAplicacao, pedido_id: str, status: str, observacao: str = "") -> Dict[str, Any]:
    """Aprova ou rejeita um pedido pendente."""
    usuario = ctx.exigir(Permissao.MANAGE_ORDERS)
    repo = PedidoRepo(ctx.db_path)
    pedido = _obter_pedido(repo, pedido_id)

    atual = pedido.get("status", PENDENTE)
    if status == FINALIZADO:
        raise TransicaoInvalida("Use a finalização do pedido para dar baixa no estoque")
    if status not in TRANSICOES.get(atual, set()):
        raise TransicaoInvalida(f"Não é possível mudar o pedido de '{atual}' para '{status}'")

    patch: Dict[str, Any] = {"status": status, "observacao_admin": (observacao or "").strip()}
    if status == APROVADO:
        patch["aprovado_por"] = usuario.email
    if status == REJEITADO:
        patch["rejeitado_por"] = usuario.email

    repo.atualizar(pedido_id, patch, versao_esperada=pedido["versao"])
    registrar_auditoria(ctx.db_path, f"order/{status}", usuario.email, {"pedido_id": pedido_id})
    log_system_event("pedido_status", {"pedido_id": pedido_id, "de": atual, "para": status})
    return repo.obter(pedido_id)


def _conferir_saldo(ctx: ContextoAplicacao, linhas: List[Dict[str, Any]]) -> None:
    """Garante saldo para todas as linhas antes de dar qualquer baixa."""
    por_item: Dict[str, float] = defaultdict(float)
    for l in linhas:
        por_item[l["item_id"]] += l["quantidade"]
    repo = ItemRepo(ctx.db_path)
    for item_id, pedido in por_item.items():
        item = repo.obter(item_id)
        if item is None:
            raise ItemNaoEncontrado()
        disponivel = item.get("quantidade") or 0
        if disponivel < pedido:
            raise InsufficientStock(disponivel, normalizar_quantidade(pedido))


def finalizar_pedido(
    ctx: ContextoAplicacao,
    pedido_id: str,
    itens_editados: Optional[List[Dict[str, Any]]] = None,
) -> List[str]:
    """Dá baixa no estoque de um pedido aprovado. Devolve os ids das saídas criadas."""
    usuario = ctx.exigir(Permissao.MANAGE_ORDERS)
    repo = PedidoRepo(ctx.db_path)
    pedido = _obter_pedido(repo, pedido_id)
    if pedido.get("status") != APROVADO:
        raise TransicaoInvalida("Apenas pedidos aprovados podem ser finalizados")

    linhas = [_linha(i) for i in (itens_editados if itens_editados is not None else pedido["itens"])]
    linhas = [l for l in linhas if not l["personalizado"]]
    for l in linhas:
        if not is_valid_quantidade(l["quantidade"]):
            raise ValidationError([f"Quantidade inválida para {l['nome'] or l['codigo']}"])
    _conferir_saldo(ctx, linhas)

    # reserva o pedido antes da baixa: só uma finalização concorrente vence
    baixa = {
        "status": FINALIZADO,
        "aprovado_por": pedido.get("aprovado_por") or usuario.email,
        "observacao_admin": "Pedido baixado do estoque",
    }
    try:
        repo.atualizar(pedido_id, baixa, versao_esperada=pedido["versao"])
    except ConflitoConcorrencia:
        raise TransicaoInvalida(
            "O pedido foi alterado por outro usuário. Atualize os dados e tente novamente."
        ) from None

    saidas: List[str] = []
    try:
        for l in linhas:
            saidas.append(registrar_saida(ctx, {
                "item_id": l["item_id"],
                "codigo": l["codigo"],
                "quantidade": l["quantidade"],
                "setor_destino": pedido.get("setor_destino") or SETOR_PADRAO_PEDIDO,
                "retirado_por": pedido.get("solicitado_por") or "Sistema",
                "observacao": f"Pedido #{pedido_id} - {l['nome']}",
            }))
    except AlmoxarifadoError as e:
        log_system_event("pedido_finalizar_error", {"pedido_id": pedido_id, "saidas": saidas, "error": str(e)},
                         level="error")
        if saidas:
            # parte do estoque já foi baixada: o pedido fica finalizado com a baixa parcial
            repo.atualizar(pedido_id, {"saidas": saidas, "observacao_admin": f"Baixa parcial: {e}"})
        else:
            repo.atualizar(pedido_id, {
                "status": APROVADO,
                "aprovado_por": pedido.get("aprovado_por"),
                "observacao_admin": pedido.get("observacao_admin"),
            })
        raise

    repo.atualizar(pedido_id, {"saidas": saidas})
    registrar_auditoria(ctx.db_path, "order/finalizado", usuario.email, {"pedido_id": pedido_id, "saidas": saidas})
    log_transaction("pedido_finalizar", {"pedido_id": pedido_id}, result=saidas)
    return saidas
