import copy

import pytest

from almoxarifado.domain.lotes import (
    adicionar_lote,
    consumir_lotes,
    normalizar_quantidade,
    normalizar_validade,
    total_lotes,
    validade_mais_proxima,
)
from almoxarifado.exceptions import InsufficientStock, ValidationError


def _lotes():
    return [
        {"quantidade": 5, "validade": "2026-03-01"},
        {"quantidade": 3, "validade": "2026-01-01"},
        {"quantidade": 4, "validade": None},
    ]


def test_consome_validade_mais_proxima_primeiro():
    res = consumir_lotes(_lotes(), 6)
    assert [l.as_dict() for l in res.lotes_consumidos] == [
        {"validade": "2026-01-01", "consumido": 3},
        {"validade": "2026-03-01", "consumido": 3},
    ]
    # ordem original dos lotes é preservada
    assert res.lotes == [
        {"quantidade": 2, "validade": "2026-03-01"},
        {"quantidade": 0, "validade": "2026-01-01"},
        {"quantidade": 4, "validade": None},
    ]
    assert res.total == 6


def test_lote_sem_validade_por_ultimo():
    res = consumir_lotes([{"quantidade": 2, "validade": None}, {"quantidade": 2, "validade": "2027-01-01"}], 3)
    assert [(l.validade, l.consumido) for l in res.lotes_consumidos] == [("2027-01-01", 2), (None, 1)]


def test_pula_lotes_zerados():
    lotes = [{"quantidade": 0, "validade": "2025-01-01"}, {"quantidade": 2, "validade": "2026-01-01"}]
    res = consumir_lotes(lotes, 1)
    assert [(l.validade, l.consumido) for l in res.lotes_consumidos] == [("2026-01-01", 1)]


def test_nao_altera_lista_recebida():
    lotes = _lotes()
    original = copy.deepcopy(lotes)
    consumir_lotes(lotes, 10)
    assert lotes == original


def test_insuficiente_antes_de_qualquer_alteracao():
    lotes = _lotes()
    with pytest.raises(InsufficientStock) as exc:
        consumir_lotes(lotes, 13)
    assert exc.value.disponivel == 12
    assert exc.value.mensagem == "Estoque insuficiente. Disponível: 12, solicitado: 13"
    assert lotes == _lotes()


def test_quantidades_fracionadas():
    res = consumir_lotes([{"quantidade": 1.5, "validade": "2026-01-01"}], 0.5)
    assert res.lotes[0]["quantidade"] == 1
    assert isinstance(res.lotes[0]["quantidade"], int)
    assert res.lotes_consumidos[0].consumido == 0.5


def test_empate_de_validade_mantem_ordem():
    lotes = [
        {"quantidade": 2, "validade": "2026-01-01", "nota": "primeiro"},
        {"quantidade": 3, "validade": "2026-01-01", "nota": "segundo"},
    ]
    res = consumir_lotes(lotes, 3)
    assert [l["quantidade"] for l in res.lotes] == [0, 2]
    assert [(l.validade, l.consumido) for l in res.lotes_consumidos] == [("2026-01-01", 2), ("2026-01-01", 1)]


def test_exemplo_com_dois_vencimentos_e_lote_sem_validade():
    lotes = [
        {"quantidade": 5, "validade": "2024-01-01"},
        {"quantidade": 3, "validade": "2024-02-01"},
        {"quantidade": 10, "validade": None},
    ]
    res = consumir_lotes(lotes, 7)
    assert [(l.validade, l.consumido) for l in res.lotes_consumidos] == [("2024-01-01", 5), ("2024-02-01", 2)]
    assert [l["quantidade"] for l in res.lotes] == [0, 1, 10]

    with pytest.raises(InsufficientStock) as exc:
        consumir_lotes(lotes, 19)
    assert exc.value.disponivel == 18
    assert lotes == [
        {"quantidade": 5, "validade": "2024-01-01"},
        {"quantidade": 3, "validade": "2024-02-01"},
        {"quantidade": 10, "validade": None},
    ]


def test_adicionar_lote_soma_mesma_validade():
    lotes = adicionar_lote(_lotes(), 2, "2026-01-01")
    assert lotes[1] == {"quantidade": 5, "validade": "2026-01-01"}
    assert len(lotes) == 3

    lotes = adicionar_lote(lotes, 1, "2030-01-01")
    assert lotes[-1] == {"quantidade": 1, "validade": "2030-01-01"}
    assert total_lotes(lotes) == 15


def test_validade_mais_proxima_ignora_lotes_zerados():
    lotes = [
        {"quantidade": 0, "validade": "2025-01-01"},
        {"quantidade": 1, "validade": "2026-05-01"},
        {"quantidade": 1, "validade": None},
    ]
    assert validade_mais_proxima(lotes) == "2026-05-01"
    assert validade_mais_proxima([{"quantidade": 3, "validade": None}]) is None


@pytest.mark.parametrize(
    "valor,esperado",
    [
        (None, None),
        ("", None),
        ("2026-12-31", "2026-12-31"),
        ("2026-12-31T00:00:00", "2026-12-31"),
    ],
)
def test_normalizar_validade(valor, esperado):
    assert normalizar_validade(valor) == esperado


def test_normalizar_validade_invalida():
    with pytest.raises(ValidationError) as exc:
        normalizar_validade("31/12/2026")
    assert exc.value.errors == ["Data de validade inválida"]


def test_normalizar_quantidade():
    assert normalizar_quantidade(5.0) == 5 and isinstance(normalizar_quantidade(5.0), int)
    assert normalizar_quantidade(2.5) == 2.5
