import pytest

from almoxarifado.domain.validadores import MSG_SETOR_OBRIGATORIO
from almoxarifado.exceptions import (
    ConflitoConcorrencia, InsufficientStock, ItemNaoEncontrado, RemoteStoreError, ValidationError,
)
from almoxarifado.infra.repositories import ItemRepo, SaidaRepo
from almoxarifado.usecases.registrar_entrada import registrar_entrada
from almoxarifado.usecases.registrar_saida import registrar_saida
from almoxarifado.usecases.transacao import atualizar_item


@pytest.fixture
def luva(ctx):
    registrar_entrada(ctx, {"codigo": "A1", "nome": "Luva", "quantidade": 5, "validade": "2026-01-01"})
    registrar_entrada(ctx, {"codigo": "A1", "quantidade": 5, "validade": "2025-06-01"})
    registrar_entrada(ctx, {"codigo": "A1", "quantidade": 2})
    return ItemRepo(ctx.db_path).por_codigo("A1")


def test_saida_consome_lotes_por_validade(ctx, luva):
    saida_id = registrar_saida(ctx, {"codigo": "A1", "quantidade": 7, "setor_destino": "PSF", "retirado_por": "Ana"})

    item = ItemRepo(ctx.db_path).obter(luva["id"])
    assert item["quantidade"] == 5
    assert item["lotes"] == [
        {"quantidade": 3, "validade": "2026-01-01"},
        {"quantidade": 0, "validade": "2025-06-01"},
        {"quantidade": 2, "validade": None},
    ]
    assert item["validade"] == "2026-01-01"

    rec = SaidaRepo(ctx.db_path).obter(saida_id)
    assert rec["lotes_consumidos"] == [
        {"validade": "2025-06-01", "consumido": 5},
        {"validade": "2026-01-01", "consumido": 2},
    ]
    assert rec["setor_destino"] == "PSF"
    assert rec["retirado_por"] == "Ana"
    assert rec["nome"] == "Luva"
    assert rec["usuario"] == ctx.usuario.email


def test_saida_por_item_id(ctx, luva):
    registrar_saida(ctx, {"item_id": luva["id"], "quantidade": 12, "setor_destino": "Escola"})
    item = ItemRepo(ctx.db_path).obter(luva["id"])
    assert item["quantidade"] == 0
    assert item["validade"] is None


def test_saida_maior_que_saldo(ctx, luva):
    with pytest.raises(InsufficientStock) as exc:
        registrar_saida(ctx, {"codigo": "A1", "quantidade": 13, "setor_destino": "PSF"})
    assert exc.value.mensagem == "Estoque insuficiente. Disponível: 12, solicitado: 13"
    assert ItemRepo(ctx.db_path).obter(luva["id"])["quantidade"] == 12
    assert SaidaRepo(ctx.db_path).listar() == []


def test_saida_sem_setor(ctx, luva):
    with pytest.raises(ValidationError) as exc:
        registrar_saida(ctx, {"codigo": "A1", "quantidade": 1})
    assert exc.value.errors == [MSG_SETOR_OBRIGATORIO]


def test_saida_item_desconhecido(ctx):
    with pytest.raises(ItemNaoEncontrado):
        registrar_saida(ctx, {"codigo": "ZZ", "quantidade": 1, "setor_destino": "PSF"})


def test_atualizar_item_refaz_calculo_em_conflito(ctx, luva):
    repo = ItemRepo(ctx.db_path)
    chamadas = []

    def calcular(item):
        chamadas.append(item["versao"])
        if len(chamadas) == 1:
            # outra operação grava o item entre a leitura e a gravação
            repo.atualizar(item["id"], {"quantidade": item["quantidade"] + 1})
        return {"quantidade": item["quantidade"] - 1}, "ok"

    lido, resultado = atualizar_item(repo, luva["id"], calcular, tentativas=3)
    assert resultado == "ok"
    assert len(chamadas) == 2
    assert chamadas[1] == chamadas[0] + 1
    assert lido["quantidade"] == 13
    assert repo.obter(luva["id"])["quantidade"] == 12


def test_atualizar_item_esgota_tentativas(ctx, luva):
    repo = ItemRepo(ctx.db_path)

    def calcular(item):
        repo.atualizar(item["id"], {"observacao": "concorrente"})
        return {"quantidade": 0}, None

    with pytest.raises(ConflitoConcorrencia):
        atualizar_item(repo, luva["id"], calcular, tentativas=2)
    assert repo.obter(luva["id"])["quantidade"] == 12


def test_saidas_sucessivas_nao_perdem_atualizacao(ctx, ctx_usuario, luva):
    registrar_saida(ctx, {"codigo": "A1", "quantidade": 4, "setor_destino": "PSF"})
    registrar_saida(ctx_usuario, {"codigo": "A1", "quantidade": 4, "setor_destino": "PSF"})
    assert ItemRepo(ctx.db_path).obter(luva["id"])["quantidade"] == 4
    assert len(SaidaRepo(ctx.db_path).listar()) == 2


def test_falha_ao_gravar_saida_nao_baixa_estoque(ctx, luva, insert_falha):
    with pytest.raises(RemoteStoreError):
        registrar_saida(ctx, {"codigo": "A1", "quantidade": 4, "setor_destino": "PSF"})
    item = ItemRepo(ctx.db_path).obter(luva["id"])
    assert item["quantidade"] == 12
    assert item["versao"] == luva["versao"]
    assert item["lotes"] == luva["lotes"]
    assert SaidaRepo(ctx.db_path).listar() == []
