# almoxarifado/contexto.py
"""
Contexto da aplicação.

Objeto explícito passado para os casos de uso com o usuário logado, suas
permissões, a configuração em vigor e a lista de itens em cache. É montado
no login e limpo no logout (via observador do provedor de identidade).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from almoxarifado.config import DB_PATH, DEFAULTS, DefaultConfig
from almoxarifado.domain.estado import itens_estoque_baixo, itens_vencendo
from almoxarifado.domain.permissoes import Permissao
from almoxarifado.exceptions import AutenticacaoNecessaria, PermissaoNegada
from almoxarifado.infra.auth import ProvedorIdentidade, ResultadoAuth, Usuario
from almoxarifado.infra.logger import log_system_event
from almoxarifado.infra.migrations import apply_migrations
from almoxarifado.infra.repositories import ItemRepo, ParamsRepo


class ContextoAplicacao:
    def __init__(self, db_path: str = DB_PATH, provedor: Optional[ProvedorIdentidade] = None):
        apply_migrations(db_path)
        self.db_path = db_path
        self.provedor = provedor or ProvedorIdentidade(db_path)
        self.config: DefaultConfig = DEFAULTS
        self._itens: Optional[List[Dict[str, Any]]] = None
        self._usuario: Optional[Usuario] = None
        self._cancelar = self.provedor.observar(self._ao_mudar_usuario)

    # -----------------------
    # ciclo de vida
    # -----------------------

    def _ao_mudar_usuario(self, usuario: Optional[Usuario]) -> None:
        self._usuario = usuario
        self._itens = None
        if usuario is not None:
            self.config = ParamsRepo(self.db_path).config()
            log_system_event("contexto_iniciado", {"email": usuario.email, "papel": usuario.papel})
        else:
            self.config = DEFAULTS

    def entrar(self, email: str, senha: str) -> ResultadoAuth:
        return self.provedor.login(email, senha)

    def sair(self) -> ResultadoAuth:
        return self.provedor.logout()

    def fechar(self) -> None:
        """Desliga o contexto do provedor de identidade."""
        self._cancelar()

    # -----------------------
    # usuário e permissões
    # -----------------------

    @property
    def usuario(self) -> Usuario:
        if self._usuario is None:
            raise AutenticacaoNecessaria()
        return self._usuario

    @property
    def autenticado(self) -> bool:
        return self._usuario is not None

    @property
    def permissoes(self) -> frozenset:
        return self._usuario.permissoes if self._usuario else frozenset()

    def tem_permissao(self, permissao: Permissao) -> bool:
        return permissao in self.permissoes

    def exigir(self, permissao: Permissao) -> Usuario:
        """Usuário logado com `permissao`, ou levanta o erro correspondente."""
        usuario = self.usuario
        if not usuario.pode(permissao):
            log_system_event("permissao_negada", {"email": usuario.email, "permissao": permissao.value},
                             level="warning")
            raise PermissaoNegada(permissao)
        return usuario

    # -----------------------
    # itens em cache
    # -----------------------

    @property
    def itens(self) -> List[Dict[str, Any]]:
        if self._itens is None:
            self.recarregar_itens()
        return self._itens

    def recarregar_itens(self) -> List[Dict[str, Any]]:
        self._itens = ItemRepo(self.db_path).listar_por_nome()
        return self._itens

    def invalidar_itens(self) -> None:
        self._itens = None

    @property
    def estoque_baixo(self) -> List[Dict[str, Any]]:
        return itens_estoque_baixo(self.itens, self.config.estoque_baixo_limite)

    @property
    def vencendo(self) -> List[Dict[str, Any]]:
        return itens_vencendo(self.itens, self.config.vencimento_proximo_dias)
