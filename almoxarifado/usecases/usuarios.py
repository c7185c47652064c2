# almoxarifado/usecases/usuarios.py
"""
UC: gestão de usuários (somente administradores).
"""

from __future__ import annotations

from typing import Any, Dict, List

from almoxarifado.contexto import ContextoAplicacao
from almoxarifado.domain.permissoes import Papel, Permissao
from almoxarifado.exceptions import AlmoxarifadoError, ValidationError
from almoxarifado.infra.auth import Usuario
from almoxarifado.infra.logger import log_system_event
from almoxarifado.infra.repositories import UsuarioRepo
from .auditoria import registrar_auditoria


def listar_usuarios(ctx: ContextoAplicacao) -> List[Dict[str, Any]]:
    ctx.exigir(Permissao.MANAGE_USERS)
    docs = UsuarioRepo(ctx.db_path).listar()
    return [{"id": d["id"], "email": d["email"], "papel": d.get("papel", Papel.USUARIO.value)} for d in docs]


def criar_usuario(ctx: ContextoAplicacao, email: str, senha: str, papel: str = Papel.USUARIO.value) -> Usuario:
    admin = ctx.exigir(Permissao.MANAGE_USERS)
    usuario = ctx.provedor.criar_usuario(email, senha, papel)
    registrar_auditoria(ctx.db_path, "user/create", admin.email, {"email": usuario.email, "papel": papel})
    return usuario


def alterar_papel(ctx: ContextoAplicacao, email: str, papel: str) -> Usuario:
    admin = ctx.exigir(Permissao.MANAGE_USERS)
    if papel not in {p.value for p in Papel}:
        raise ValidationError([f"Papel inválido: {papel}"])

    repo = UsuarioRepo(ctx.db_path)
    doc = repo.por_email(email)
    if doc is None:
        raise AlmoxarifadoError("Usuário não encontrado")
    if doc["email"] == admin.email and papel != Papel.ADMIN.value:
        raise AlmoxarifadoError("Você não pode remover seu próprio acesso de administrador")

    repo.atualizar(doc["id"], {"papel": papel, "alterado_por": admin.email})
    registrar_auditoria(ctx.db_path, "user/role", admin.email, {"email": doc["email"], "papel": papel})
    log_system_event("papel_alterado", {"email": doc["email"], "papel": papel, "por": admin.email})
    return Usuario(id=doc["id"], email=doc["email"], papel=papel)
