from datetime import date, timedelta

import pytest

from almoxarifado.exceptions import PermissaoNegada
from almoxarifado.usecases.registrar_entrada import registrar_entrada
from almoxarifado.usecases.registrar_saida import registrar_saida
from almoxarifado.usecases.relatorios import (
    painel,
    relatorio_estoque_baixo,
    relatorio_periodo,
    relatorio_vencimentos,
)

HOJE = date.today()


def _iso(dias: int) -> str:
    return (HOJE + timedelta(days=dias)).isoformat()


@pytest.fixture
def estoque(ctx):
    registrar_entrada(ctx, {"codigo": "A1", "nome": "Álcool", "quantidade": 4, "validade": _iso(10),
                            "categoria": "Limpeza", "fornecedor": "Acme"})
    registrar_entrada(ctx, {"codigo": "C1", "nome": "Caneta", "quantidade": 50, "categoria": "Escritório"})
    registrar_entrada(ctx, {"codigo": "L1", "nome": "Leite", "quantidade": 20, "validade": _iso(-2),
                            "categoria": "Alimentação", "fornecedor": "Acme"})
    registrar_saida(ctx, {"codigo": "C1", "quantidade": 5, "setor_destino": "Escola"})
    return ctx


def test_painel_do_dia(estoque):
    p = painel(estoque, hoje=HOJE)
    assert p["total_itens"] == 3
    assert p["quantidade_total"] == 69
    assert p["entradas_hoje"] == 3
    assert p["saidas_hoje"] == 1
    assert p["quantidade_entrada_hoje"] == 74
    assert p["quantidade_saida_hoje"] == 5
    assert [i["codigo"] for i in p["estoque_baixo"]] == ["A1"]
    assert [i["codigo"] for i in p["vencendo"]] == ["L1", "A1"]
    assert len(p["entradas_recentes"]) == 3
    assert p["saidas_recentes"][0]["codigo"] == "C1"


def test_painel_outro_dia_sem_movimento(estoque):
    p = painel(estoque, hoje=HOJE - timedelta(days=3))
    assert p["entradas_hoje"] == 0
    assert p["saidas_hoje"] == 0


def test_estoque_baixo(estoque):
    registrar_entrada(estoque, {"codigo": "Z1", "nome": "Zíper", "quantidade": 1})
    linhas = relatorio_estoque_baixo(estoque)
    assert [(l["codigo"], l["quantidade"], l["limite"]) for l in linhas] == [("Z1", 1, 10.0), ("A1", 4, 10.0)]


def test_vencimentos(estoque):
    linhas = relatorio_vencimentos(estoque, hoje=HOJE)
    assert [(l["codigo"], l["situacao"]) for l in linhas] == [("L1", "VENCIDO"), ("A1", "10 dias")]
    assert linhas[1]["quantidade_vencendo"] == 4

    assert [l["codigo"] for l in relatorio_vencimentos(estoque, janela_dias=5, hoje=HOJE)] == ["L1"]


def test_relatorio_periodo(estoque):
    r = relatorio_periodo(estoque, HOJE, HOJE)
    assert r["total_entradas"] == 74
    assert r["total_saidas"] == 5
    assert r["estoque_baixo"] == 1
    assert r["vencendo"] == 1
    assert r["vencidos"] == 1
    assert r["por_categoria"] == {"Limpeza": 1, "Escritório": 1, "Alimentação": 1}
    assert r["por_fornecedor"] == {"Acme": 2, "Sem fornecedor": 1}
    assert r["saidas_por_setor"] == {"Escola": 5}

    antes = relatorio_periodo(estoque, HOJE - timedelta(days=10), HOJE - timedelta(days=1))
    assert antes["total_entradas"] == 0
    assert antes["saidas_por_setor"] == {}


def test_usuario_comum_nao_ve_relatorios(ctx_usuario):
    with pytest.raises(PermissaoNegada):
        relatorio_estoque_baixo(ctx_usuario)
