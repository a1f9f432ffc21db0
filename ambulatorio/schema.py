"""
Metadati statici delle tabelle, ricavati dai modelli ORM.

Il query builder lavora con SQL testuale: i tipi Boolean e JSON dei modelli
vengono usati qui per convertire i valori da/verso SQLite (0/1, testo JSON).
"""
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Boolean

from . import models  # noqa: F401  (registra le tabelle nel metadata)
from .db import Base


def _columns_of_type(type_: type) -> dict[str, frozenset[str]]:
    out: dict[str, frozenset[str]] = {}
    for name, table in Base.metadata.tables.items():
        cols = frozenset(c.name for c in table.columns if isinstance(c.type, type_))
        if cols:
            out[name] = cols
    return out


BOOLEAN_FIELDS: dict[str, frozenset[str]] = _columns_of_type(Boolean)
JSON_FIELDS: dict[str, frozenset[str]] = _columns_of_type(JSON)

TABLE_COLUMNS: dict[str, frozenset[str]] = {
    name: frozenset(c.name for c in table.columns) for name, table in Base.metadata.tables.items()
}

PRIMARY_KEYS: dict[str, str] = {
    name: list(table.primary_key.columns)[0].name
    for name, table in Base.metadata.tables.items()
    if len(table.primary_key.columns) == 1
}


def primary_key(table: str) -> str:
    return PRIMARY_KEYS.get(table, "id")


def has_column(table: str, column: str) -> bool:
    """Tabelle sconosciute: si assume che la colonna esista."""
    cols = TABLE_COLUMNS.get(table)
    return cols is None or column in cols


def convert_row(table: str, row: dict[str, Any] | None) -> dict[str, Any] | None:
    """Riga SQLite -> dict applicativo (0/1 -> bool, testo JSON -> struttura)."""
    if row is None:
        return None

    converted = dict(row)
    for field in BOOLEAN_FIELDS.get(table, ()):
        if field in converted and converted[field] is not None:
            converted[field] = bool(converted[field])

    for field in JSON_FIELDS.get(table, ()):
        value = converted.get(field)
        if isinstance(value, str):
            try:
                converted[field] = json.loads(value)
            except ValueError:
                # testo non JSON: lasciato com'è
                pass
    return converted


def to_db_value(table: str, column: str, value: Any) -> Any:
    """Valore applicativo -> valore SQLite per insert/update/filtri."""
    if isinstance(value, bool) and column in BOOLEAN_FIELDS.get(table, ()):
        return 1 if value else 0
    if isinstance(value, (dict, list)) and column in JSON_FIELDS.get(table, ()):
        return json.dumps(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value
