# almoxarifado/usecases/transacao.py
"""
Gravação condicional de itens (leitura -> cálculo -> gravação pela versão lida).

Se outra operação alterar o item entre a leitura e a gravação, o item é
relido e o cálculo refeito, até o limite de tentativas.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Tuple

from almoxarifado.exceptions import ConflitoConcorrencia, ItemNaoEncontrado
from almoxarifado.infra.logger import log_system_event
from almoxarifado.infra.repositories import ItemRepo

Calculo = Callable[[Dict[str, Any]], Tuple[Dict[str, Any], Any]]
Gravacao = Callable[[Dict[str, Any], Dict[str, Any], Any], Any]


def _com_tentativas(repo: ItemRepo, item_id: str, calcular: Calculo, tentativas: int, gravar: Gravacao):
    for tentativa in range(1, max(1, tentativas) + 1):
        item = repo.obter(item_id)
        if item is None:
            raise ItemNaoEncontrado()
        patch, resultado = calcular(item)
        try:
            return item, resultado, gravar(item, patch, resultado)
        except ConflitoConcorrencia:
            log_system_event("item_conflict_retry", {"item_id": item_id, "tentativa": tentativa}, level="warning")
    log_system_event("item_conflict_exhausted", {"item_id": item_id, "tentativas": tentativas}, level="error")
    raise ConflitoConcorrencia()


def atualizar_item(repo: ItemRepo, item_id: str, calcular: Calculo, tentativas: int) -> Tuple[Dict[str, Any], Any]:
    """
    Aplica `calcular(item) -> (patch, resultado)` com compare-and-swap.

    Devolve o item como foi lido na tentativa vencedora e o `resultado`.
    Exceções levantadas por `calcular` (ex.: estoque insuficiente) passam
    direto, sem nova tentativa.
    """
    def _gravar(item, patch, _resultado):
        return repo.atualizar(item_id, patch, versao_esperada=item["versao"])

    item, resultado, _ = _com_tentativas(repo, item_id, calcular, tentativas, _gravar)
    return item, resultado


def atualizar_item_com_registro(
    repo: ItemRepo, item_id: str, calcular: Calculo, tentativas: int, registro
) -> Tuple[Dict[str, Any], Dict[str, Any], str]:
    """
    Como `atualizar_item`, mas `calcular` devolve `(patch, documento)` e o
    documento é inserido no repositório `registro` na mesma transação do item.

    Devolve `(item_lido, documento, id_do_documento)`.
    """
    def _gravar(item, patch, doc):
        _, doc_id = repo.atualizar_com_registro(item_id, patch, item["versao"], registro, doc)
        return doc_id

    return _com_tentativas(repo, item_id, calcular, tentativas, _gravar)
