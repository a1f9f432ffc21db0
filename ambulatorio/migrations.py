from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from . import models  # noqa: F401  (registra le tabelle nel metadata)
from .db import Base

logger = logging.getLogger(__name__)

# Colonne aggiunte dopo la prima versione dello schema: (tabella, colonna, DDL)
ADDITIVE_COLUMNS: list[tuple[str, str, str]] = [
    ("payments", "check_number", "TEXT"),
    ("practitioners", "password_hash", "TEXT"),
    ("consultations", "send_post_session_advice", "INTEGER DEFAULT 0"),
    ("consultations", "post_session_advice_sent_at", "TEXT"),
]


def table_columns(conn: Connection, table: str) -> set[str]:
    rows = conn.execute(text(f"PRAGMA table_info({table});")).fetchall()
    return {r[1] for r in rows}  # r[1] = nome colonna


def run_migrations(conn: Connection) -> list[str]:
    """Aggiunge le colonne mancanti ai DB creati da versioni precedenti. Ritorna le colonne aggiunte."""
    added: list[str] = []
    for table, column, ddl in ADDITIVE_COLUMNS:
        cols = table_columns(conn, table)
        if not cols or column in cols:
            continue
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl};"))
        logger.info("Migrazione: aggiunta colonna %s.%s", table, column)
        added.append(f"{table}.{column}")
    return added


def init_schema(engine: Engine) -> None:
    """Crea le tabelle se non esistono, poi applica le migrazioni additive."""
    Base.metadata.create_all(bind=engine)
    with engine.begin() as conn:
        run_migrations(conn)
