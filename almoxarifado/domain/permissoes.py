# almoxarifado/domain/permissoes.py
"""
Tabela estática de permissões por papel.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class Papel(str, Enum):
    ADMIN = "admin"
    USUARIO = "usuario"


class Permissao(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_ITEMS = "view_items"
    CREATE_ITEMS = "create_items"
    EDIT_ITEMS = "edit_items"
    CREATE_ENTRY = "create_entry"
    CREATE_EXIT = "create_exit"
    VIEW_ENTRIES_HISTORY = "view_entries_history"
    VIEW_EXITS_HISTORY = "view_exits_history"
    VIEW_REPORTS = "view_reports"
    CREATE_ORDER = "create_order"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_USERS = "manage_users"
    ADJUST_STOCK = "adjust_stock"


PERMISSOES_POR_PAPEL: Dict[Papel, FrozenSet[Permissao]] = {
    Papel.ADMIN: frozenset(Permissao),
    Papel.USUARIO: frozenset({
        Permissao.VIEW_DASHBOARD,
        Permissao.VIEW_ITEMS,
        Permissao.CREATE_ENTRY,
        Permissao.CREATE_EXIT,
        Permissao.VIEW_ENTRIES_HISTORY,
        Permissao.VIEW_EXITS_HISTORY,
        Permissao.CREATE_ORDER,
    }),
}


def permissoes_do_papel(papel) -> FrozenSet[Permissao]:
    """Permissões de um papel; papel desconhecido não tem nenhuma."""
    try:
        return PERMISSOES_POR_PAPEL[Papel(papel)]
    except ValueError:
        return frozenset()


def pode(papel, permissao: Permissao) -> bool:
    return permissao in permissoes_do_papel(papel)
