import sqlite3
from pathlib import Path

import pytest

from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.permissoes import Papel
from almoxarifado.infra.store import DocumentStore

ADMIN_EMAIL = "admin@almox.gov.br"
USUARIO_EMAIL = "operador@almox.gov.br"
SENHA = "segredo123"


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "almox_test.sqlite")


@pytest.fixture
def ctx(db_path):
    """Contexto logado como administrador."""
    c = ContextoAplicacao(db_path)
    c.provedor.garantir_admin(ADMIN_EMAIL, SENHA)
    assert c.entrar(ADMIN_EMAIL, SENHA).success
    yield c
    c.sair()
    c.fechar()


@pytest.fixture
def ctx_usuario(ctx, db_path):
    """Contexto logado com papel `usuario` (mesmo banco do admin)."""
    ctx.provedor.criar_usuario(USUARIO_EMAIL, SENHA, Papel.USUARIO.value)
    c = ContextoAplicacao(db_path)
    assert c.entrar(USUARIO_EMAIL, SENHA).success
    yield c
    c.sair()
    c.fechar()


@pytest.fixture
def insert_falha(monkeypatch):
    """A partir daqui todo INSERT de documento falha no SQLite."""
    def _falha(self, c, colecao, dados):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(DocumentStore, "_inserir", _falha)
