# almoxarifado/infra/repositories.py
"""
Repositórios de acesso aos dados do almoxarifado.

Classes:
- ParamsRepo      (tabela params, chave/valor)
- ItemRepo        (coleção items)
- EntradaRepo     (coleção entries)
- SaidaRepo       (coleção exits)
- AjusteRepo      (coleção adjustments)
- PedidoRepo      (coleção orders)
- UsuarioRepo     (coleção users)
- AuditoriaRepo   (coleção auditLogs)
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .db import connect
from .store import DocumentStore
from almoxarifado.config import DEFAULTS, DefaultConfig


# -------------------------
# Helpers
# -------------------------

def _as_dict(row: Any) -> Dict[str, Any]:
    if isinstance(row, dict):
        return row
    if is_dataclass(row):
        return asdict(row)
    raise TypeError("row must be dict or dataclass")


# -------------------------
# Params
# -------------------------

class ParamsRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def set_many(self, items: Iterable[Tuple[str, str]]) -> None:
        with connect(self.db_path) as c:
            c.executemany(
                """
                INSERT INTO params (chave, valor)
                VALUES (?, ?)
                ON CONFLICT(chave) DO UPDATE SET valor=excluded.valor
                """,
                list(items),
            )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT valor FROM params WHERE chave = ?", (key,)).fetchone()
            return row[0] if row else default

    def get_float(self, key: str, default: float) -> float:
        v = self.get(key, None)
        if v is None:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    def efetivos(self) -> Dict[str, float]:
        """Parâmetros em vigor: valor gravado ou o padrão de `DEFAULTS`."""
        padrao = asdict(DEFAULTS)
        return {chave: self.get_float(chave, valor) for chave, valor in padrao.items()}

    def config(self) -> DefaultConfig:
        """`DefaultConfig` com os valores gravados sobrepostos aos padrões."""
        padrao = asdict(DEFAULTS)
        valores = {
            chave: int(v) if isinstance(padrao[chave], int) else v
            for chave, v in self.efetivos().items()
        }
        return DefaultConfig(**valores)


# -------------------------
# Coleções de documentos
# -------------------------

class _ColecaoRepo:
    colecao: str = ""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.store = DocumentStore(db_path)

    def listar(self) -> List[Dict[str, Any]]:
        return self.store.get_all(self.colecao)

    def obter(self, doc_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get_by_id(self.colecao, doc_id)

    def inserir(self, row: Any) -> str:
        return self.store.add(self.colecao, _as_dict(row))

    def atualizar(self, doc_id: str, patch: Dict[str, Any], versao_esperada: Optional[int] = None) -> int:
        return self.store.update(self.colecao, doc_id, patch, versao_esperada=versao_esperada)


class _MovimentoRepo(_ColecaoRepo):
    def listar_recentes(self, limite: int) -> List[Dict[str, Any]]:
        docs = self.listar()
        docs.sort(key=lambda d: d["criado_em"], reverse=True)
        return docs[:limite]

    def listar_periodo(self, inicio: datetime, fim: datetime) -> List[Dict[str, Any]]:
        return self.store.query_by_date_range(self.colecao, "criado_em", inicio, fim)


class ItemRepo(_ColecaoRepo):
    colecao = "items"

    def por_codigo(self, codigo: str) -> Optional[Dict[str, Any]]:
        docs = self.store.get_by_field(self.colecao, "codigo", codigo)
        return docs[0] if docs else None

    def listar_por_nome(self) -> List[Dict[str, Any]]:
        docs = self.listar()
        docs.sort(key=lambda d: (d.get("nome") or "").lower())
        return docs

    def atualizar_com_registro(
        self,
        item_id: str,
        patch: Dict[str, Any],
        versao_esperada: int,
        registro: "_ColecaoRepo",
        row: Any,
    ) -> Tuple[int, str]:
        """Grava o item e o movimento que o explica (entrada, saída, ajuste) juntos."""
        return self.store.update_and_add(
            self.colecao, item_id, patch, versao_esperada, registro.colecao, _as_dict(row)
        )


class EntradaRepo(_MovimentoRepo):
    colecao = "entries"


class SaidaRepo(_MovimentoRepo):
    colecao = "exits"


class AjusteRepo(_MovimentoRepo):
    colecao = "adjustments"


class PedidoRepo(_MovimentoRepo):
    colecao = "orders"

    def por_status(self, status: str) -> List[Dict[str, Any]]:
        return self.store.get_by_field(self.colecao, "status", status)


class UsuarioRepo(_ColecaoRepo):
    colecao = "users"

    def por_email(self, email: str) -> Optional[Dict[str, Any]]:
        docs = self.store.get_by_field(self.colecao, "email", email.strip().lower())
        return docs[0] if docs else None


class AuditoriaRepo(_MovimentoRepo):
    colecao = "auditLogs"
