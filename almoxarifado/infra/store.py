# almoxarifado/infra/store.py
"""
Armazenamento de documentos sobre SQLite.

Cada documento é um JSON guardado na tabela `documentos`, identificado por
(coleção, id) e com um contador `versao` incrementado a cada gravação.
A API espelha um banco de documentos remoto:

- get_all / get_by_id / get_by_field
- add (id gerado pelo armazenamento)
- update (merge parcial, opcionalmente condicionado à versão lida)
- update_and_add (update condicional + add na mesma transação)
- query_by_date_range

Campos de data/hora (`data`, `criado_em`, `atualizado_em`) são gravados em
ISO-8601 e devolvidos como `Timestamp`. Qualquer falha do SQLite vira
`RemoteStoreError`.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .db import connect
from .logger import log_database_operation, log_system_event
from almoxarifado.exceptions import ConflitoConcorrencia, ItemNaoEncontrado, RemoteStoreError


CAMPOS_DATA_HORA = ("data", "criado_em", "atualizado_em")
_CAMPOS_CONTROLE = ("id", "versao")


@dataclass(frozen=True, order=True)
class Timestamp:
    """Instante armazenado; `to_date()` devolve o datetime local."""
    valor: datetime

    @classmethod
    def now(cls) -> "Timestamp":
        return cls(datetime.now())

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Timestamp":
        return cls(dt)

    @classmethod
    def from_iso(cls, texto: str) -> "Timestamp":
        return cls(datetime.fromisoformat(texto))

    def to_date(self) -> datetime:
        return self.valor

    def isoformat(self) -> str:
        return _iso(self.valor)

    def __str__(self) -> str:
        return self.isoformat()


def _iso(dt: datetime) -> str:
    return dt.isoformat(timespec="microseconds")


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Timestamp):
        return obj.isoformat()
    if isinstance(obj, datetime):
        return _iso(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    raise TypeError(f"Tipo não serializável: {type(obj).__name__}")


def _para_iso(valor: Any) -> Any:
    if isinstance(valor, Timestamp):
        return valor.isoformat()
    if isinstance(valor, datetime):
        return _iso(valor)
    if isinstance(valor, date):
        return _iso(datetime(valor.year, valor.month, valor.day))
    return valor


class DocumentStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    # -------------------------
    # helpers
    # -------------------------

    def _executar(self, operacao: str, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        try:
            with connect(self.db_path) as c:
                return fn(c)
        except sqlite3.Error as e:
            log_system_event("store_error", {"operacao": operacao, "error": str(e)}, level="error")
            raise RemoteStoreError(operacao, e) from e

    @staticmethod
    def _serializar(dados: Dict[str, Any]) -> str:
        limpo = {k: v for k, v in dados.items() if k not in _CAMPOS_CONTROLE}
        return json.dumps(limpo, ensure_ascii=False, default=_json_default)

    @staticmethod
    def _para_doc(row: sqlite3.Row) -> Dict[str, Any]:
        doc = json.loads(row["dados"])
        for campo in CAMPOS_DATA_HORA:
            valor = doc.get(campo)
            if isinstance(valor, str) and valor:
                try:
                    doc[campo] = Timestamp.from_iso(valor)
                except ValueError:
                    pass
        doc["id"] = row["id"]
        doc["versao"] = row["versao"]
        return doc

    # -------------------------
    # leitura
    # -------------------------

    def get_all(self, colecao: str) -> List[Dict[str, Any]]:
        """Todos os documentos da coleção, na ordem de criação."""
        def _fn(c):
            rows = c.execute(
                "SELECT id, dados, versao FROM documentos WHERE colecao = ? ORDER BY criado_em, rowid",
                (colecao,),
            ).fetchall()
            return [self._para_doc(r) for r in rows]

        docs = self._executar(f"get_all:{colecao}", _fn)
        log_database_operation(colecao, "GET_ALL", len(docs))
        return docs

    def get_by_id(self, colecao: str, doc_id: str) -> Optional[Dict[str, Any]]:
        def _fn(c):
            row = c.execute(
                "SELECT id, dados, versao FROM documentos WHERE colecao = ? AND id = ?",
                (colecao, doc_id),
            ).fetchone()
            return self._para_doc(row) if row else None

        return self._executar(f"get_by_id:{colecao}", _fn)

    def get_by_field(self, colecao: str, campo: str, valor: Any) -> List[Dict[str, Any]]:
        """Documentos cujo `campo` é igual a `valor`."""
        def _fn(c):
            rows = c.execute(
                """SELECT id, dados, versao FROM documentos
                   WHERE colecao = ? AND json_extract(dados, '$.' || ?) = ?
                   ORDER BY criado_em, rowid""",
                (colecao, campo, _para_iso(valor)),
            ).fetchall()
            return [self._para_doc(r) for r in rows]

        docs = self._executar(f"get_by_field:{colecao}.{campo}", _fn)
        log_database_operation(colecao, "QUERY", len(docs), campo=campo)
        return docs

    def query_by_date_range(
        self, colecao: str, campo: str, inicio: datetime, fim: datetime
    ) -> List[Dict[str, Any]]:
        """Documentos com `inicio <= campo < fim`, em ordem cronológica."""
        def _fn(c):
            rows = c.execute(
                """SELECT id, dados, versao FROM documentos
                   WHERE colecao = ?
                     AND json_extract(dados, '$.' || ?) >= ?
                     AND json_extract(dados, '$.' || ?) < ?
                   ORDER BY json_extract(dados, '$.' || ?), rowid""",
                (colecao, campo, _para_iso(inicio), campo, _para_iso(fim), campo),
            ).fetchall()
            return [self._para_doc(r) for r in rows]

        docs = self._executar(f"query_by_date_range:{colecao}", _fn)
        log_database_operation(colecao, "QUERY_RANGE", len(docs), campo=campo)
        return docs

    # -------------------------
    # escrita
    # -------------------------

    def _inserir(self, c: sqlite3.Connection, colecao: str, dados: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        dados = dict(dados)
        dados.setdefault("criado_em", Timestamp.now())
        criado_em = _para_iso(dados["criado_em"])
        c.execute(
            """INSERT INTO documentos (colecao, id, dados, versao, criado_em, atualizado_em)
               VALUES (?, ?, ?, 1, ?, ?)""",
            (colecao, doc_id, self._serializar(dados), criado_em, criado_em),
        )
        return doc_id

    def _aplicar_patch(
        self,
        c: sqlite3.Connection,
        colecao: str,
        doc_id: str,
        patch: Dict[str, Any],
        versao_esperada: Optional[int],
    ) -> Optional[int]:
        """Nova versão; None se o documento não existe, -versão_atual em conflito."""
        row = c.execute(
            "SELECT dados, versao FROM documentos WHERE colecao = ? AND id = ?",
            (colecao, doc_id),
        ).fetchone()
        if row is None:
            return None
        if versao_esperada is not None and row["versao"] != versao_esperada:
            return -row["versao"]
        agora = Timestamp.now()
        dados = json.loads(row["dados"])
        dados.update({k: v for k, v in patch.items() if k not in _CAMPOS_CONTROLE})
        dados["atualizado_em"] = agora
        nova = row["versao"] + 1
        c.execute(
            """UPDATE documentos SET dados = ?, versao = ?, atualizado_em = ?
               WHERE colecao = ? AND id = ?""",
            (self._serializar(dados), nova, agora.isoformat(), colecao, doc_id),
        )
        return nova

    @staticmethod
    def _conferir_versao(colecao: str, doc_id: str, resultado: Optional[int], versao_esperada: Optional[int]) -> None:
        if resultado is None:
            raise ItemNaoEncontrado(f"Documento não encontrado: {colecao}/{doc_id}")
        if resultado < 0:
            log_database_operation(colecao, "CONFLICT", 0, id=doc_id,
                                   esperada=versao_esperada, atual=-resultado)
            raise ConflitoConcorrencia()

    def add(self, colecao: str, dados: Dict[str, Any]) -> str:
        """Grava um novo documento e devolve o id gerado."""
        doc_id = self._executar(f"add:{colecao}", lambda c: self._inserir(c, colecao, dados))
        log_database_operation(colecao, "ADD", 1, id=doc_id)
        return doc_id

    def update(
        self,
        colecao: str,
        doc_id: str,
        patch: Dict[str, Any],
        versao_esperada: Optional[int] = None,
    ) -> int:
        """
        Aplica `patch` sobre o documento e devolve a nova versão.

        Com `versao_esperada`, a gravação só acontece se a versão armazenada
        ainda for a informada; caso contrário levanta `ConflitoConcorrencia`
        sem alterar nada.
        """
        def _fn(c):
            c.execute("BEGIN IMMEDIATE")
            return self._aplicar_patch(c, colecao, doc_id, patch, versao_esperada)

        resultado = self._executar(f"update:{colecao}", _fn)
        self._conferir_versao(colecao, doc_id, resultado, versao_esperada)
        log_database_operation(colecao, "UPDATE", 1, id=doc_id, versao=resultado)
        return resultado

    def update_and_add(
        self,
        colecao: str,
        doc_id: str,
        patch: Dict[str, Any],
        versao_esperada: Optional[int],
        colecao_novo: str,
        dados_novo: Dict[str, Any],
    ) -> Tuple[int, str]:
        """
        `update` condicional + `add` numa única transação.

        Usado quando um documento e o registro que o explica precisam ser
        gravados juntos (ex.: saldo do item e a saída que o reduziu). Se
        qualquer das duas gravações falhar, nenhuma fica no banco.
        Devolve `(nova_versao, id_do_novo_documento)`.
        """
        def _fn(c):
            c.execute("BEGIN IMMEDIATE")
            nova = self._aplicar_patch(c, colecao, doc_id, patch, versao_esperada)
            if nova is None or nova < 0:
                return nova, None
            return nova, self._inserir(c, colecao_novo, dados_novo)

        resultado, novo_id = self._executar(f"update_and_add:{colecao}+{colecao_novo}", _fn)
        self._conferir_versao(colecao, doc_id, resultado, versao_esperada)
        log_database_operation(colecao, "UPDATE", 1, id=doc_id, versao=resultado)
        log_database_operation(colecao_novo, "ADD", 1, id=novo_id)
        return resultado, novo_id
