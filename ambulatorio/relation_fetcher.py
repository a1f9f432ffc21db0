from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection

from .compiler import compile_select_in
from .relations import Direction, resolve_foreign_key
from .schema import convert_row
from .select_parser import RelationSpec

logger = logging.getLogger(__name__)

Row = dict[str, Any]


def _distinct(values) -> list[Any]:
    seen: dict[Any, None] = {}
    for v in values:
        if v is not None and v != "":
            seen.setdefault(v, None)
    return list(seen)


def _trim(rows: list[Row], spec: RelationSpec) -> None:
    """Lascia solo le colonne richieste (più gli alias delle relazioni annidate)."""
    wanted = spec.column_names
    if "*" in wanted:
        return
    keep = set(wanted) | {n.alias for n in spec.nested}
    for row in rows:
        for key in [k for k in row if k not in keep]:
            del row[key]


def fetch_relation(conn: Connection, parent_table: str, parent_rows: list[Row], spec: RelationSpec) -> None:
    """
    Aggancia spec.alias a ogni riga di parent_rows (modificate sul posto).

    Una sola query batch per relazione, qualunque sia il numero di righe padre;
    le relazioni annidate sono risolte sulle righe appena lette prima di agganciarle.
    """
    if not parent_rows:
        return

    fk = resolve_foreign_key(parent_table, spec.table)
    to_one = fk.direction is Direction.PARENT
    keys = _distinct(r.get(fk.column) for r in parent_rows)

    if not keys:
        for row in parent_rows:
            row[spec.alias] = None if to_one else []
        return

    stmt = compile_select_in(spec.table, fk.referenced_column, keys)
    logger.debug("Relazione %s -> %s (%s): %s", parent_table, spec.table, fk.direction.value, stmt.sql)
    related = [convert_row(spec.table, dict(r)) for r in conn.execute(text(stmt.sql), stmt.params).mappings()]

    for nested in spec.nested:
        fetch_relation(conn, spec.table, related, nested)

    # chiavi lette prima del trim: la colonna di join può non essere tra quelle richieste
    join_keys = [r.get(fk.referenced_column) for r in related]
    _trim(related, spec)

    if to_one:
        indexed: dict[Any, Row] = {}
        for key, row in zip(join_keys, related):
            indexed.setdefault(key, row)
        for row in parent_rows:
            row[spec.alias] = indexed.get(row.get(fk.column))
        return

    grouped: dict[Any, list[Row]] = {}
    for key, row in zip(join_keys, related):
        grouped.setdefault(key, []).append(row)
    for row in parent_rows:
        row[spec.alias] = grouped.get(row.get(fk.column), [])
