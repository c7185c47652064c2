# almoxarifado/infra/auth.py
"""
Provedor de identidade local.

Guarda os usuários na coleção `users` com a senha em hash
(`werkzeug.security`) e mantém o usuário da sessão atual. Interessados
podem observar as mudanças de login/logout com `observar()`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from almoxarifado.domain.permissoes import Papel, Permissao, permissoes_do_papel
from almoxarifado.domain.validadores import is_valid_email, is_valid_password
from almoxarifado.exceptions import AlmoxarifadoError, RemoteStoreError, ValidationError, mensagem_amigavel
from .logger import log_system_event
from .repositories import UsuarioRepo


@dataclass
class Usuario:
    id: str
    email: str
    papel: str = Papel.USUARIO.value

    @property
    def permissoes(self) -> frozenset:
        return permissoes_do_papel(self.papel)

    @property
    def is_admin(self) -> bool:
        return self.papel == Papel.ADMIN.value

    def pode(self, permissao: Permissao) -> bool:
        return permissao in self.permissoes

    @classmethod
    def from_doc(cls, doc) -> "Usuario":
        return cls(id=doc["id"], email=doc["email"], papel=doc.get("papel") or Papel.USUARIO.value)


@dataclass
class ResultadoAuth:
    success: bool
    error: Optional[str] = None
    usuario: Optional[Usuario] = None


Observador = Callable[[Optional[Usuario]], None]


class ProvedorIdentidade:
    def __init__(self, db_path: str):
        self.usuarios = UsuarioRepo(db_path)
        self._atual: Optional[Usuario] = None
        self._observadores: List[Observador] = []

    @property
    def usuario_atual(self) -> Optional[Usuario]:
        return self._atual

    def observar(self, callback: Observador) -> Callable[[], None]:
        """Registra `callback`, chamando-o já com o usuário atual. Devolve a função de cancelamento."""
        self._observadores.append(callback)
        callback(self._atual)

        def cancelar() -> None:
            if callback in self._observadores:
                self._observadores.remove(callback)

        return cancelar

    def _notificar(self) -> None:
        for cb in list(self._observadores):
            cb(self._atual)

    # -----------------------
    # sessão
    # -----------------------

    def login(self, email: str, senha: str) -> ResultadoAuth:
        email = (email or "").strip().lower()
        if not is_valid_email(email):
            return ResultadoAuth(success=False, error="Email inválido")
        try:
            doc = self.usuarios.por_email(email)
        except RemoteStoreError as e:
            log_system_event("login_error", {"email": email, "error": str(e)}, level="error")
            return ResultadoAuth(success=False, error=mensagem_amigavel(e))

        if not doc or not check_password_hash(doc.get("senha_hash", ""), senha or ""):
            log_system_event("login_failed", {"email": email}, level="warning")
            return ResultadoAuth(success=False, error="Email ou senha incorretos")

        self._atual = Usuario.from_doc(doc)
        log_system_event("login", {"email": email, "papel": self._atual.papel})
        self._notificar()
        return ResultadoAuth(success=True, usuario=self._atual)

    def logout(self) -> ResultadoAuth:
        if self._atual is not None:
            log_system_event("logout", {"email": self._atual.email})
        self._atual = None
        self._notificar()
        return ResultadoAuth(success=True)

    # -----------------------
    # cadastro
    # -----------------------

    def criar_usuario(self, email: str, senha: str, papel: str = Papel.USUARIO.value) -> Usuario:
        email = (email or "").strip().lower()
        erros = []
        if not is_valid_email(email):
            erros.append("Email inválido")
        if not is_valid_password(senha):
            erros.append("A senha deve ter no mínimo 6 caracteres")
        if papel not in {p.value for p in Papel}:
            erros.append(f"Papel inválido: {papel}")
        if erros:
            raise ValidationError(erros)
        if self.usuarios.por_email(email):
            raise AlmoxarifadoError("Este email já está em uso")

        doc_id = self.usuarios.inserir({
            "email": email,
            "papel": papel,
            "senha_hash": generate_password_hash(senha),
        })
        log_system_event("user_created", {"email": email, "papel": papel})
        return Usuario(id=doc_id, email=email, papel=papel)

    def garantir_admin(self, email: str, senha: str) -> Usuario:
        """Cria o administrador inicial ou promove o usuário existente."""
        doc = self.usuarios.por_email(email.strip().lower())
        if doc is None:
            return self.criar_usuario(email, senha, Papel.ADMIN.value)
        if doc.get("papel") != Papel.ADMIN.value:
            self.usuarios.atualizar(doc["id"], {"papel": Papel.ADMIN.value})
            log_system_event("admin_promoted", {"email": doc["email"]})
        return Usuario(id=doc["id"], email=doc["email"], papel=Papel.ADMIN.value)
