# almoxarifado/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: tabela de parâmetros e tabela genérica de documentos (JSON por coleção)
V2: coluna `atualizado_em` nos documentos e índice por coleção
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Parâmetros K/V
    """
    CREATE TABLE IF NOT EXISTS params (
        chave TEXT PRIMARY KEY,
        valor TEXT
    );
    """,
    # Documentos: cada linha é um documento JSON de uma coleção
    """
    CREATE TABLE IF NOT EXISTS documentos (
        colecao TEXT NOT NULL,
        id TEXT NOT NULL,
        dados TEXT NOT NULL,
        versao INTEGER NOT NULL DEFAULT 1,
        criado_em TEXT,
        PRIMARY KEY (colecao, id)
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    _ensure_column(conn, "documentos", "atualizado_em", "atualizado_em TEXT")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_documentos_colecao_criado "
        "ON documentos (colecao, criado_em);"
    )


def apply_migrations(db_path: str) -> None:
    """Aplica migrações incrementais de acordo com PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2
