# almoxarifado/usecases/registrar_entrada.py
"""
UC: Registrar ENTRADAS (única e em lote).
- registrar_entrada(): valida, localiza ou cria o item, soma ao lote da validade
  informada e grava o histórico.
- registrar_entradas_planilha(path): lê um XLSX e registra linha a linha.

Obs.:
- Sem código de barras, o item é procurado pelo nome exato (sem diferenciar
  maiúsculas); se não existir é criado automaticamente.
- A gravação do item é condicional à versão lida e acontece na mesma
  transação do registro da entrada (ver usecases.transacao).
"""

from __future__ import annotations

from typing import Any, Dict, List

from almoxarifado.adapters.planilhas import load_entradas_from_xlsx
from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.lotes import adicionar_lote, normalizar_quantidade, normalizar_validade, validade_mais_proxima
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.domain.validadores import validate_entry
from almoxarifado.exceptions import AlmoxarifadoError, ValidationError, mensagem_amigavel
from almoxarifado.infra.logger import (
    log_transaction, log_entrada, log_system_event, log_file_operation, print_system,
)
from almoxarifado.infra.repositories import EntradaRepo, ItemRepo
from almoxarifado.infra.store import Timestamp
from .auditoria import registrar_auditoria
from .itens import novo_item_doc
from .transacao import atualizar_item_com_registro


def _texto(valor: Any) -> str:
    return str(valor).strip() if valor is not None else ""


def _localizar_ou_criar_item(ctx: ContextoAplicacao, dados: Dict[str, Any], usuario: str) -> str:
    """Devolve o id do item da entrada, criando-o se necessário."""
    repo = ItemRepo(ctx.db_path)
    codigo = _texto(dados.get("codigo"))
    nome = _texto(dados.get("nome"))

    if dados.get("item_id") and repo.obter(dados["item_id"]):
        return dados["item_id"]
    if codigo:
        item = repo.por_codigo(codigo)
        if item:
            return item["id"]
    elif nome:
        for item in repo.listar():
            if not item.get("codigo") and _texto(item.get("nome")).lower() == nome.lower():
                return item["id"]

    if not nome:
        raise ValidationError(["Nome do item é obrigatório para criar novo item"])

    log_system_event("creating_auto_item", {"codigo": codigo, "nome": nome})
    doc = novo_item_doc({
        "nome": nome,
        "codigo": codigo,
        "categoria": dados.get("categoria"),
        "unidade": dados.get("unidade"),
        "local": dados.get("local"),
        "fornecedor": dados.get("fornecedor"),
    })
    item_id = repo.inserir(doc)
    registrar_auditoria(ctx.db_path, "item/create", usuario, {"item_id": item_id, "origem": "entrada", **doc})
    return item_id


def registrar_entrada(ctx: ContextoAplicacao, dados: Dict[str, Any]) -> str:
    """Registra uma entrada de estoque e devolve o id do registro."""
    usuario = ctx.exigir(Permissao.CREATE_ENTRY)
    codigo = _texto(dados.get("codigo"))
    log_entrada("start", codigo, dados.get("quantidade"), dados.get("validade"))

    try:
        resultado = validate_entry(dados)
        if not resultado.is_valid:
            raise ValidationError(resultado.errors)

        quantidade = normalizar_quantidade(dados["quantidade"])
        validade = normalizar_validade(dados.get("validade"))
        item_id = _localizar_ou_criar_item(ctx, dados, usuario.email)
        data = dados.get("data") or Timestamp.now()

        def _calcular(item):
            lotes = adicionar_lote(item.get("lotes") or [], quantidade, validade)
            patch = {
                "quantidade": normalizar_quantidade((item.get("quantidade") or 0) + quantidade),
                "lotes": lotes,
                "validade": validade_mais_proxima(lotes),
            }
            rec = {
                "item_id": item_id,
                "codigo": item.get("codigo") or codigo,
                "nome": item.get("nome", ""),
                "quantidade": quantidade,
                "validade": validade,
                "fornecedor": _texto(dados.get("fornecedor")),
                "observacao": _texto(dados.get("observacao")),
                "data": data,
                "usuario": usuario.email,
            }
            return patch, {k: v for k, v in rec.items() if v is not None}

        _, rec, rec_id = atualizar_item_com_registro(
            ItemRepo(ctx.db_path), item_id, _calcular, ctx.config.max_tentativas_transacao, EntradaRepo(ctx.db_path)
        )

        log_entrada("insert", rec["codigo"], quantidade, validade, item_id=item_id, entrada_id=rec_id)
        log_transaction("entrada", rec, result=rec_id)
        ctx.invalidar_itens()
        return rec_id
    except Exception as e:
        log_transaction("entrada", {"codigo": codigo, "quantidade": dados.get("quantidade")}, error=str(e))
        log_system_event("entrada_error", {"error": str(e)}, level="error")
        raise


def registrar_entradas_planilha(ctx: ContextoAplicacao, path: str) -> Dict[str, Any]:
    """Lê um XLSX de ENTRADAS e registra cada linha; erros por linha são coletados."""
    ctx.exigir(Permissao.CREATE_ENTRY)
    log_system_event("entrada_lote_start", {"file_path": path})
    rows: List[Dict[str, Any]] = load_entradas_from_xlsx(path)
    log_file_operation("import", path, rows_processed=len(rows))

    sucessos = 0
    erros: List[Dict[str, Any]] = []
    for n, row in enumerate(rows, start=2):  # linha 1 = cabeçalho
        try:
            registrar_entrada(ctx, row)
            sucessos += 1
        except AlmoxarifadoError as e:
            erros.append({"linha": n, "mensagem": mensagem_amigavel(e)})

    print_system(f">> {sucessos} de {len(rows)} entradas registradas.")
    result = {"tipo": "Entradas", "arquivo": path, "total": len(rows), "sucessos": sucessos, "erros": erros}
    log_transaction("entrada_lote", {"file": path, "rows_count": len(rows)}, result=result)
    return result
