# almoxarifado/usecases/auditoria.py
"""
UC: trilha de auditoria (coleção auditLogs).

Falha ao gravar auditoria não interrompe a operação principal: o erro vai
para o log do sistema.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from almoxarifado.exceptions import RemoteStoreError
from almoxarifado.infra.logger import log_system_event
from almoxarifado.infra.repositories import AuditoriaRepo


def registrar_auditoria(db_path: str, acao: str, usuario: Optional[str], dados: Dict[str, Any]) -> Optional[str]:
    try:
        return AuditoriaRepo(db_path).inserir({"acao": acao, "usuario": usuario, "dados": dados})
    except RemoteStoreError as e:
        log_system_event("audit_error", {"acao": acao, "error": str(e)}, level="error")
        return None


def listar_auditoria(db_path: str, limite: int = 50) -> List[Dict[str, Any]]:
    return AuditoriaRepo(db_path).listar_recentes(limite)
