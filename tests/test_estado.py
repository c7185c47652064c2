from datetime import date

import pytest

from almoxarifado.domain.estado import (
    classificar_validade,
    formatar_validade,
    itens_estoque_baixo,
    itens_vencendo,
    status_item,
)

HOJE = date(2026, 1, 1)


@pytest.mark.parametrize(
    "validade,vencendo,vencido,dias",
    [
        ("2026-01-31", True, False, 30),
        ("2026-02-01", False, False, 31),
        ("2026-01-01", True, False, 0),
        ("2025-12-31", False, True, -1),
        (None, False, False, None),
    ],
)
def test_classificar_validade(validade, vencendo, vencido, dias):
    info = classificar_validade(validade, 30, HOJE)
    assert info.vencendo is vencendo
    assert info.vencido is vencido
    assert info.dias_para_vencer == dias


def test_formatar_validade():
    assert formatar_validade(None) == "Sem validade"
    assert formatar_validade("abc") == "Data inválida"
    assert formatar_validade("2026-12-31") == "31/12/2026"


def test_estoque_baixo_inclui_limite_e_zero():
    itens = [
        {"nome": "a", "quantidade": 10},
        {"nome": "b", "quantidade": 11},
        {"nome": "c", "quantidade": 0},
        {"nome": "d", "quantidade": 15, "estoque_minimo": 20},
        {"nome": "e"},
    ]
    assert [i["nome"] for i in itens_estoque_baixo(itens, 10)] == ["a", "c", "d", "e"]


def test_itens_vencendo_por_lote():
    itens = [
        {
            "nome": "Outro",
            "lotes": [{"quantidade": 1, "validade": "2026-01-15"}],
        },
        {
            "nome": "Luva",
            "lotes": [
                {"quantidade": 2, "validade": "2026-01-10"},
                {"quantidade": 3, "validade": "2025-12-20"},
                {"quantidade": 0, "validade": "2025-12-01"},
                {"quantidade": 5, "validade": None},
                {"quantidade": 1, "validade": "2026-06-01"},
            ],
        },
        {"nome": "Sem lote vencendo", "lotes": [{"quantidade": 9, "validade": "2027-01-01"}]},
    ]
    res = itens_vencendo(itens, 30, HOJE)
    assert [r["nome"] for r in res] == ["Luva", "Outro"]

    luva, outro = res
    assert luva["validade"] == "2025-12-20"
    assert luva["vencido"] is True
    assert luva["quantidade_vencendo"] == 5
    assert luva["situacao"] == "VENCIDO"
    assert outro["situacao"] == "14 dias"
    assert outro["dias_para_vencer"] == 14


@pytest.mark.parametrize(
    "item,esperado",
    [
        ({"quantidade": 5}, "Estoque baixo"),
        ({"quantidade": 50, "validade": "2026-01-05"}, "Perto do vencimento"),
        ({"quantidade": 50, "validade": "2025-12-01"}, "Vencido"),
        ({"quantidade": 5, "validade": "2026-01-03"}, "Estoque baixo e perto do vencimento"),
        ({"quantidade": 50}, "OK"),
    ],
)
def test_status_item(item, esperado):
    assert status_item(item, 10, HOJE) == esperado
