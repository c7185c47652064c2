import sqlite3

from almoxarifado.exceptions import (
    MENSAGEM_GENERICA,
    DuplicateCodeError,
    InsufficientStock,
    ValidationError,
    mensagem_amigavel,
)


def test_mensagens_de_negocio():
    assert mensagem_amigavel(InsufficientStock(3.0, 5)) == "Estoque insuficiente. Disponível: 3, solicitado: 5"
    assert mensagem_amigavel(DuplicateCodeError("1")) == "Já existe um item com este código de barras!"
    assert mensagem_amigavel(ValidationError(["a", "b"])) == "a; b"


def test_mensagens_de_infraestrutura():
    assert mensagem_amigavel(None) == "Ocorreu um erro desconhecido"
    assert "indisponível" in mensagem_amigavel(sqlite3.OperationalError("database is locked"))
    assert mensagem_amigavel(TimeoutError()) == "A operação demorou muito. Tente novamente"
    assert mensagem_amigavel(ConnectionError()).startswith("Erro de conexão")


def test_mensagem_generica_para_textos_longos():
    assert mensagem_amigavel(RuntimeError("curto")) == "curto"
    assert mensagem_amigavel(RuntimeError("x" * 300)) == MENSAGEM_GENERICA
    assert mensagem_amigavel(RuntimeError()) == MENSAGEM_GENERICA
