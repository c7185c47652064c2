import pytest

from almoxarifado.exceptions import DuplicateCodeError, PermissaoNegada, ValidationError
from almoxarifado.infra.repositories import AuditoriaRepo, ItemRepo
from almoxarifado.usecases.itens import (
    buscar_itens_catalogo,
    cadastrar_item,
    codigo_em_uso,
    editar_item,
    sincronizar_quantidade,
    verificar_consistencia,
    verificar_consistencia_geral,
)


def test_cadastro_com_quantidade_inicial_vira_lote(ctx):
    item_id = cadastrar_item(ctx, {
        "nome": "Detergente", "codigo": "555", "unidade": "lt", "quantidade": 8, "validade": "2026-08-01",
    })
    item = ItemRepo(ctx.db_path).obter(item_id)
    assert item["unidade"] == "LT"
    assert item["quantidade"] == 8
    assert item["lotes"] == [{"quantidade": 8, "validade": "2026-08-01"}]
    assert item["validade"] == "2026-08-01"
    assert [a["acao"] for a in AuditoriaRepo(ctx.db_path).listar()] == ["item/create"]


def test_codigo_duplicado(ctx):
    cadastrar_item(ctx, {"nome": "Caneta", "codigo": "100"})
    with pytest.raises(DuplicateCodeError) as exc:
        cadastrar_item(ctx, {"nome": "Outra caneta", "codigo": "100"})
    assert exc.value.mensagem == "Já existe um item com este código de barras!"
    assert len(ItemRepo(ctx.db_path).listar()) == 1


def test_itens_sem_codigo_nao_conflitam(ctx):
    cadastrar_item(ctx, {"nome": "A"})
    cadastrar_item(ctx, {"nome": "B"})
    assert len(ItemRepo(ctx.db_path).listar()) == 2


def test_unidade_invalida(ctx):
    with pytest.raises(ValidationError):
        cadastrar_item(ctx, {"nome": "Fio", "unidade": "ZZ"})


def test_usuario_comum_nao_cadastra(ctx_usuario):
    with pytest.raises(PermissaoNegada):
        cadastrar_item(ctx_usuario, {"nome": "Caneta"})


def test_editar_item(ctx):
    item_id = cadastrar_item(ctx, {"nome": "Caneta", "codigo": "100", "quantidade": 3})
    cadastrar_item(ctx, {"nome": "Lápis", "codigo": "200"})

    item = editar_item(ctx, item_id, {"nome": "Caneta azul", "local": "Armário 2"})
    assert item["nome"] == "Caneta azul"
    assert item["local"] == "Armário 2"
    assert item["quantidade"] == 3

    with pytest.raises(DuplicateCodeError):
        editar_item(ctx, item_id, {"codigo": "200"})
    with pytest.raises(ValidationError):
        editar_item(ctx, item_id, {"quantidade": 10})
    # mesmo código do próprio item não é duplicidade
    assert editar_item(ctx, item_id, {"codigo": "100"})["codigo"] == "100"


def test_codigo_em_uso_ignora_o_proprio_item(ctx):
    item_id = cadastrar_item(ctx, {"nome": "Caneta", "codigo": "100"})
    assert codigo_em_uso(ctx.db_path, "100")
    assert not codigo_em_uso(ctx.db_path, "100", ignorar_id=item_id)
    assert not codigo_em_uso(ctx.db_path, "  ")


def test_consistencia_e_sincronizacao(ctx):
    item_id = cadastrar_item(ctx, {"nome": "Caneta", "quantidade": 5})
    assert verificar_consistencia(ctx, item_id).is_valid

    ItemRepo(ctx.db_path).atualizar(item_id, {"quantidade": 9})
    r = verificar_consistencia(ctx, item_id)
    assert not r.is_valid
    assert r.diferenca == 4
    assert "Inconsistência detectada" in r.mensagem
    assert [i["id"] for i in verificar_consistencia_geral(ctx)] == [item_id]

    res = sincronizar_quantidade(ctx, item_id)
    assert (res["anterior"], res["nova"]) == (9, 5)
    assert ItemRepo(ctx.db_path).obter(item_id)["quantidade"] == 5
    assert verificar_consistencia_geral(ctx) == []


def test_consistencia_item_inexistente(ctx):
    r = verificar_consistencia(ctx, "nao-existe")
    assert not r.is_valid
    assert r.mensagem == "Item não encontrado"


def test_busca_tolerante(ctx):
    cadastrar_item(ctx, {"nome": "Caneta azul", "codigo": "100", "categoria": "Material de Escritório"})
    cadastrar_item(ctx, {"nome": "Sabão líquido", "codigo": "200", "categoria": "Material de Limpeza"})

    assert [i["nome"] for i in buscar_itens_catalogo(ctx, "canetaa")] == ["Caneta azul"]
    assert [i["nome"] for i in buscar_itens_catalogo(ctx, "sabao")] == ["Sabão líquido"]
    assert len(buscar_itens_catalogo(ctx, "")) == 2
