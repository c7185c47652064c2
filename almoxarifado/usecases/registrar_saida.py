# almoxarifado/usecases/registrar_saida.py
"""
UC: Registrar SAÍDAS.

Fluxo de `registrar_saida()`:
1. valida o formulário (identificação, quantidade, setor destino);
2. localiza o item pelo código de barras ou pelo id;
3. confere o saldo e consome os lotes por validade (PEPS);
4. grava o item condicionado à versão lida e, na mesma transação, o registro
   da saída com o detalhamento `lotes_consumidos`; em conflito refaz o cálculo.
"""

from __future__ import annotations

from typing import Any, Dict

from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.lotes import consumir_lotes, normalizar_quantidade, validade_mais_proxima
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.domain.validadores import validate_exit
from almoxarifado.exceptions import InsufficientStock, ValidationError
from almoxarifado.infra.logger import log_transaction, log_saida, log_system_event
from almoxarifado.infra.repositories import ItemRepo, SaidaRepo
from almoxarifado.infra.store import Timestamp
from .itens import obter_item
from .transacao import atualizar_item_com_registro


def _texto(valor: Any) -> str:
    return str(valor).strip() if valor is not None else ""


def registrar_saida(ctx: ContextoAplicacao, dados: Dict[str, Any]) -> str:
    """Registra uma saída de estoque e devolve o id do registro."""
    usuario = ctx.exigir(Permissao.CREATE_EXIT)
    codigo = _texto(dados.get("codigo"))
    log_saida("start", codigo, dados.get("quantidade"), setor_destino=dados.get("setor_destino"))

    try:
        resultado = validate_exit(dados)
        if not resultado.is_valid:
            raise ValidationError(resultado.errors)

        quantidade = normalizar_quantidade(dados["quantidade"])
        item_id = obter_item(ctx.db_path, item_id=dados.get("item_id"), codigo=codigo)["id"]
        data = dados.get("data") or Timestamp.now()

        def _calcular(item):
            disponivel = normalizar_quantidade(item.get("quantidade") or 0)
            if disponivel < quantidade:
                raise InsufficientStock(disponivel, quantidade)
            consumo = consumir_lotes(item.get("lotes") or [], quantidade)
            patch = {
                "quantidade": normalizar_quantidade(disponivel - quantidade),
                "lotes": consumo.lotes,
                "validade": validade_mais_proxima(consumo.lotes),
            }
            rec = {
                "item_id": item_id,
                "codigo": item.get("codigo") or codigo,
                "nome": item.get("nome", ""),
                "quantidade": quantidade,
                "setor_destino": _texto(dados.get("setor_destino")),
                "retirado_por": _texto(dados.get("retirado_por")),
                "observacao": _texto(dados.get("observacao")),
                "lotes_consumidos": [l.as_dict() for l in consumo.lotes_consumidos],
                "data": data,
                "usuario": usuario.email,
            }
            return patch, rec

        _, rec, rec_id = atualizar_item_com_registro(
            ItemRepo(ctx.db_path), item_id, _calcular, ctx.config.max_tentativas_transacao, SaidaRepo(ctx.db_path)
        )

        for lote in rec["lotes_consumidos"]:
            log_saida("consume", rec["codigo"], lote["consumido"], lote["validade"], saida_id=rec_id)
        log_transaction("saida", rec, result=rec_id)
        ctx.invalidar_itens()
        return rec_id
    except Exception as e:
        log_transaction("saida", {"codigo": codigo, "quantidade": dados.get("quantidade")}, error=str(e))
        log_system_event("saida_error", {"error": str(e)}, level="error")
        raise
