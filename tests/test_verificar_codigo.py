import asyncio

from almoxarifado.usecases.itens import cadastrar_item
from almoxarifado.usecases.verificar_codigo import VerificadorCodigoDuplicado


def test_verifica_codigo_existente(ctx):
    cadastrar_item(ctx, {"nome": "Caneta", "codigo": "100"})

    async def rodar():
        v = VerificadorCodigoDuplicado(ctx.db_path, atraso=0.01)
        v.agendar("100")
        return await v.aguardar()

    res = asyncio.run(rodar())
    assert res.codigo == "100"
    assert res.duplicado is True


def test_nova_digitacao_cancela_a_anterior(ctx):
    cadastrar_item(ctx, {"nome": "Caneta", "codigo": "100"})

    async def rodar():
        v = VerificadorCodigoDuplicado(ctx.db_path, atraso=0.05)
        primeira = v.agendar("10")
        v.agendar("100")
        res = await v.aguardar()
        await asyncio.sleep(0)
        return primeira, res

    primeira, res = asyncio.run(rodar())
    assert primeira.cancelled()
    assert res.codigo == "100"
    assert res.duplicado is True


def test_ignora_o_proprio_item_na_edicao(ctx):
    item_id = cadastrar_item(ctx, {"nome": "Caneta", "codigo": "100"})

    async def rodar():
        v = VerificadorCodigoDuplicado(ctx.db_path, atraso=0, ignorar_id=item_id)
        v.agendar("100")
        return await v.aguardar()

    assert asyncio.run(rodar()).duplicado is False


def test_cancelar_sem_resultado(ctx):
    async def rodar():
        v = VerificadorCodigoDuplicado(ctx.db_path, atraso=10)
        v.agendar("999")
        v.cancelar()
        return await v.aguardar()

    assert asyncio.run(rodar()) is None


def test_codigo_vazio_nao_consulta(ctx):
    async def rodar():
        v = VerificadorCodigoDuplicado(ctx.db_path, atraso=0)
        v.agendar("   ")
        return await v.aguardar()

    res = asyncio.run(rodar())
    assert res.codigo == ""
    assert res.duplicado is False
