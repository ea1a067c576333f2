# plano/infra/migrations.py
"""
Migrações de schema usando PRAGMA user_version.

V1: plano de produção, estoque intermediário, destinatários e log de e-mail
V2: índices e coluna de criação no estoque intermediário
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Plano de produção (um registro por código de material)
    """
    CREATE TABLE IF NOT EXISTS producao (
        cod_material TEXT PRIMARY KEY,
        material TEXT NOT NULL,
        plano_caixas REAL NOT NULL,
        tons REAL NOT NULL,
        bolsas_produzido INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """,
    # Estoque intermediário por aroma (sempre substitui o valor anterior)
    """
    CREATE TABLE IF NOT EXISTS intermediario (
        aroma_key TEXT PRIMARY KEY,
        qtd_pacotes REAL NOT NULL CHECK (qtd_pacotes >= 0),
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """,
    # Destinatários (e-mail criptografado)
    """
    CREATE TABLE IF NOT EXISTS destinatario (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        alias TEXT NOT NULL,
        email_enc TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """,
    # Auditoria de envios
    """
    CREATE TABLE IF NOT EXISTS email_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        status TEXT NOT NULL CHECK (status IN ('success', 'error')),
        to_ids TEXT NOT NULL DEFAULT '[]',
        cc_ids TEXT NOT NULL DEFAULT '[]',
        bcc_ids TEXT NOT NULL DEFAULT '[]',
        message_id TEXT,
        teams_status TEXT,
        error TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adiciona coluna se não existir."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] é o nome da coluna
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    # SQLite não aceita default não constante em ADD COLUMN
    _ensure_column(conn, "intermediario", "created_at", "created_at TEXT")
    conn.execute("UPDATE intermediario SET created_at = updated_at WHERE created_at IS NULL;")
    conn.executescript(
        """
        CREATE INDEX IF NOT EXISTS idx_producao_updated ON producao(updated_at);
        CREATE INDEX IF NOT EXISTS idx_email_log_created ON email_log(created_at);
        """
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
