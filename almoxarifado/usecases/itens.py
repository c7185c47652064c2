# almoxarifado/usecases/itens.py
"""
UC: catálogo de itens.

- cadastrar_item(): novo item (código de barras único; quantidade inicial vira lote)
- editar_item(): altera dados cadastrais (quantidade só via ajuste/movimentos)
- buscar_itens_catalogo(): busca tolerante a erros
- verificar_consistencia() / sincronizar_quantidade(): total x soma dos lotes
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from almoxarifado.config import UNIDADE_PADRAO, UNIDADES
from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.busca import buscar_itens
from almoxarifado.domain.lotes import (
    adicionar_lote, normalizar_quantidade, normalizar_validade, total_lotes, validade_mais_proxima,
)
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.domain.validadores import validate_item
from almoxarifado.exceptions import DuplicateCodeError, ItemNaoEncontrado, ValidationError
from almoxarifado.infra.logger import log_system_event, log_transaction
from almoxarifado.infra.repositories import ItemRepo
from .auditoria import registrar_auditoria
from .transacao import atualizar_item

CAMPOS_EDITAVEIS = ("nome", "codigo", "categoria", "unidade", "local", "fornecedor", "observacao", "estoque_minimo")
TOLERANCIA_CONSISTENCIA = 0.01


def _texto(valor: Any) -> str:
    return str(valor).strip() if valor is not None else ""


def _validar_unidade(unidade: str) -> None:
    if unidade not in UNIDADES:
        raise ValidationError([f"Unidade inválida: {unidade}. Use uma de: {', '.join(UNIDADES)}"])


def codigo_em_uso(db_path: str, codigo: str, ignorar_id: Optional[str] = None) -> bool:
    """True se outro item já usa o código de barras."""
    codigo = _texto(codigo)
    if not codigo:
        return False
    existente = ItemRepo(db_path).por_codigo(codigo)
    return existente is not None and existente["id"] != ignorar_id


def novo_item_doc(dados: Dict[str, Any]) -> Dict[str, Any]:
    """Monta o documento de item a partir do formulário (sem gravar)."""
    quantidade = dados.get("quantidade") or 0
    if isinstance(quantidade, bool) or not isinstance(quantidade, (int, float)):
        raise ValidationError(["Quantidade deve ser um número"])
    validade = normalizar_validade(dados.get("validade"))
    lotes = adicionar_lote([], quantidade, validade) if quantidade > 0 else []
    return {
        "nome": _texto(dados.get("nome")),
        "codigo": _texto(dados.get("codigo")),
        "categoria": _texto(dados.get("categoria")),
        "unidade": _texto(dados.get("unidade")).upper() or UNIDADE_PADRAO,
        "local": _texto(dados.get("local")),
        "fornecedor": _texto(dados.get("fornecedor")),
        "observacao": _texto(dados.get("observacao")),
        "estoque_minimo": dados.get("estoque_minimo"),
        "quantidade": normalizar_quantidade(quantidade),
        "lotes": lotes,
        "validade": validade_mais_proxima(lotes),
    }


def cadastrar_item(ctx: ContextoAplicacao, dados: Dict[str, Any]) -> str:
    """Cadastra um item e devolve o id gerado."""
    usuario = ctx.exigir(Permissao.CREATE_ITEMS)
    log_system_event("cadastrar_item_start", {"codigo": dados.get("codigo"), "nome": dados.get("nome")})

    try:
        resultado = validate_item(dados)
        if not resultado.is_valid:
            raise ValidationError(resultado.errors)

        doc = novo_item_doc(dados)
        _validar_unidade(doc["unidade"])
        if codigo_em_uso(ctx.db_path, doc["codigo"]):
            raise DuplicateCodeError(doc["codigo"])

        item_id = ItemRepo(ctx.db_path).inserir(doc)
        registrar_auditoria(ctx.db_path, "item/create", usuario.email, {"item_id": item_id, **doc})
        log_transaction("cadastrar_item", {"codigo": doc["codigo"], "nome": doc["nome"]}, result=item_id)
        ctx.invalidar_itens()
        return item_id
    except Exception as e:
        log_transaction("cadastrar_item", {"codigo": dados.get("codigo")}, error=str(e))
        log_system_event("cadastrar_item_error", {"error": str(e)}, level="error")
        raise


def editar_item(ctx: ContextoAplicacao, item_id: str, alteracoes: Dict[str, Any]) -> Dict[str, Any]:
    """Altera dados cadastrais de um item. Devolve o item atualizado."""
    usuario = ctx.exigir(Permissao.EDIT_ITEMS)
    if "quantidade" in alteracoes or "lotes" in alteracoes:
        raise ValidationError(["Use o ajuste de estoque para alterar a quantidade"])

    repo = ItemRepo(ctx.db_path)
    patch = {k: v for k, v in alteracoes.items() if k in CAMPOS_EDITAVEIS}
    for campo in ("nome", "codigo", "categoria", "local", "fornecedor", "observacao"):
        if campo in patch:
            patch[campo] = _texto(patch[campo])
    if "unidade" in patch:
        patch["unidade"] = _texto(patch["unidade"]).upper() or UNIDADE_PADRAO
        _validar_unidade(patch["unidade"])

    def _calcular(item):
        resultado = validate_item({**item, **patch})
        if not resultado.is_valid:
            raise ValidationError(resultado.errors)
        if patch.get("codigo") and patch["codigo"] != item.get("codigo"):
            if codigo_em_uso(ctx.db_path, patch["codigo"], ignorar_id=item_id):
                raise DuplicateCodeError(patch["codigo"])
        return patch, None

    atualizar_item(repo, item_id, _calcular, ctx.config.max_tentativas_transacao)
    registrar_auditoria(ctx.db_path, "item/update", usuario.email, {"item_id": item_id, **patch})
    log_transaction("editar_item", {"item_id": item_id, **patch}, result="success")
    ctx.invalidar_itens()
    return repo.obter(item_id)


def obter_item(db_path: str, item_id: Optional[str] = None, codigo: Optional[str] = None) -> Dict[str, Any]:
    """Localiza pelo código de barras (preferência) ou pelo id."""
    repo = ItemRepo(db_path)
    item = None
    if _texto(codigo):
        item = repo.por_codigo(_texto(codigo))
    if item is None and item_id:
        item = repo.obter(item_id)
    if item is None:
        raise ItemNaoEncontrado()
    return item


def buscar_itens_catalogo(ctx: ContextoAplicacao, termo: Optional[str] = None) -> List[Dict[str, Any]]:
    ctx.exigir(Permissao.VIEW_ITEMS)
    return buscar_itens(ctx.itens, termo or "")


@dataclass
class ResultadoConsistencia:
    is_valid: bool
    quantidade_item: float
    soma_lotes: float
    diferenca: float
    mensagem: str


def verificar_consistencia(ctx: ContextoAplicacao, item_id: str) -> ResultadoConsistencia:
    ctx.exigir(Permissao.VIEW_ITEMS)
    item = ItemRepo(ctx.db_path).obter(item_id)
    if item is None:
        return ResultadoConsistencia(False, 0, 0, 0, "Item não encontrado")
    return _consistencia(item)


def _consistencia(item: Dict[str, Any]) -> ResultadoConsistencia:
    quantidade = normalizar_quantidade(item.get("quantidade") or 0)
    soma = total_lotes(item.get("lotes") or [])
    diferenca = normalizar_quantidade(quantidade - soma)
    ok = abs(diferenca) <= TOLERANCIA_CONSISTENCIA
    mensagem = (
        "Estoque consistente" if ok else
        f"Inconsistência detectada: Item tem {quantidade}, mas lotes somam {soma} (diferença: {diferenca})"
    )
    return ResultadoConsistencia(ok, quantidade, soma, diferenca, mensagem)


def verificar_consistencia_geral(ctx: ContextoAplicacao) -> List[Dict[str, Any]]:
    """Itens cujo total difere da soma dos lotes."""
    ctx.exigir(Permissao.VIEW_ITEMS)
    inconsistentes = []
    for item in ctx.recarregar_itens():
        r = _consistencia(item)
        if not r.is_valid:
            inconsistentes.append({
                "id": item["id"], "codigo": item.get("codigo", ""), "nome": item.get("nome", ""),
                "quantidade": r.quantidade_item, "soma_lotes": r.soma_lotes, "diferenca": r.diferenca,
            })
    return inconsistentes


def sincronizar_quantidade(ctx: ContextoAplicacao, item_id: str) -> Dict[str, Any]:
    """Corrige o total do item para a soma dos lotes."""
    usuario = ctx.exigir(Permissao.ADJUST_STOCK)
    repo = ItemRepo(ctx.db_path)

    def _calcular(item):
        soma = total_lotes(item.get("lotes") or [])
        return {"quantidade": soma}, (normalizar_quantidade(item.get("quantidade") or 0), soma)

    _, (anterior, nova) = atualizar_item(repo, item_id, _calcular, ctx.config.max_tentativas_transacao)
    if anterior != nova:
        registrar_auditoria(ctx.db_path, "item/sync", usuario.email,
                            {"item_id": item_id, "anterior": anterior, "nova": nova})
        mensagem = f"Quantidade sincronizada: {anterior} → {nova}"
    else:
        mensagem = "Quantidade já estava sincronizada"
    log_system_event("sincronizar_quantidade", {"item_id": item_id, "anterior": anterior, "nova": nova})
    ctx.invalidar_itens()
    return {"anterior": anterior, "nova": nova, "mensagem": mensagem}
