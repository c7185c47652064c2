# almoxarifado/exceptions.py
"""
Exceções do almoxarifado.

Toda exceção de negócio herda de `AlmoxarifadoError` e carrega uma mensagem
pronta para exibição. `mensagem_amigavel()` traduz qualquer exceção em um
texto único para o usuário final.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional


MENSAGEM_GENERICA = "Ocorreu um erro. Por favor, tente novamente ou entre em contato com o suporte"


def _fmt_num(valor) -> str:
    if isinstance(valor, float) and valor.is_integer():
        return str(int(valor))
    return str(valor)


class AlmoxarifadoError(Exception):
    """Erro base do sistema. `mensagem` é o texto exibido ao usuário."""

    mensagem_padrao = MENSAGEM_GENERICA

    def __init__(self, mensagem: Optional[str] = None):
        self.mensagem = mensagem or self.mensagem_padrao
        super().__init__(self.mensagem)


class ValidationError(AlmoxarifadoError):
    """Uma ou mais regras de validação falharam."""

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Dados inválidos")


class DuplicateCodeError(AlmoxarifadoError):
    def __init__(self, codigo: str):
        self.codigo = codigo
        super().__init__("Já existe um item com este código de barras!")


class InsufficientStock(AlmoxarifadoError):
    def __init__(self, disponivel, solicitado):
        self.disponivel = disponivel
        self.solicitado = solicitado
        super().__init__(
            f"Estoque insuficiente. Disponível: {_fmt_num(disponivel)}, solicitado: {_fmt_num(solicitado)}"
        )


class RemoteStoreError(AlmoxarifadoError):
    """Falha de acesso ao armazenamento de documentos."""

    mensagem_padrao = "Serviço temporariamente indisponível. Tente novamente em alguns instantes"

    def __init__(self, operacao: str, causa: Optional[BaseException] = None):
        self.operacao = operacao
        self.causa = causa
        super().__init__()

    def __str__(self) -> str:
        return f"{self.operacao}: {self.causa}" if self.causa else self.operacao


class ItemNaoEncontrado(AlmoxarifadoError):
    mensagem_padrao = "Item não encontrado."


class PermissaoNegada(AlmoxarifadoError):
    mensagem_padrao = "Você não tem permissão para realizar esta ação"

    def __init__(self, permissao=None):
        self.permissao = permissao
        super().__init__()


class AutenticacaoNecessaria(AlmoxarifadoError):
    mensagem_padrao = "Faça login para continuar"


class ErroAutenticacao(AlmoxarifadoError):
    mensagem_padrao = "Email ou senha incorretos"


class ConflitoConcorrencia(AlmoxarifadoError):
    """O item foi alterado por outra operação e as tentativas se esgotaram."""

    mensagem_padrao = "O item foi alterado por outra operação. Tente novamente"


class TransicaoInvalida(AlmoxarifadoError):
    """Mudança de status de pedido não permitida."""


def mensagem_amigavel(erro: Optional[BaseException]) -> str:
    """Converte uma exceção em mensagem em português para o usuário."""
    if erro is None:
        return "Ocorreu um erro desconhecido"
    if isinstance(erro, AlmoxarifadoError):
        return erro.mensagem
    if isinstance(erro, sqlite3.OperationalError):
        return "Serviço temporariamente indisponível. Tente novamente em alguns instantes"
    if isinstance(erro, TimeoutError):
        return "A operação demorou muito. Tente novamente"
    if isinstance(erro, (ConnectionError, OSError)):
        return "Erro de conexão. Verifique sua internet e tente novamente"
    texto = str(erro)
    if texto and len(texto) < 200:
        return texto
    return MENSAGEM_GENERICA
