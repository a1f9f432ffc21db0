"""
Compilazione dei descriptor in SQL parametrico per SQLite.

Ogni funzione ritorna uno Statement (sql + parametri con nome) da eseguire
con sqlalchemy.text(). Gli identificatori non vengono mai quotati: sono
validati contro IDENT_RE e rifiutati con QueryCompileError.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .conditions import Condition, Filter, Operator, OrGroup
from .descriptor import QueryDescriptor
from .schema import to_db_value

IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_COMPARISONS = {
    Operator.EQ: "=",
    Operator.NEQ: "!=",
    Operator.GT: ">",
    Operator.GTE: ">=",
    Operator.LT: "<",
    Operator.LTE: "<=",
}


class QueryCompileError(ValueError):
    pass


@dataclass
class Statement:
    sql: str
    params: dict[str, Any] = field(default_factory=dict)


class _Params:
    def __init__(self) -> None:
        self.values: dict[str, Any] = {}

    def add(self, value: Any) -> str:
        name = f"p{len(self.values)}"
        self.values[name] = value
        return f":{name}"


def ident(name: str) -> str:
    if not isinstance(name, str) or not IDENT_RE.match(name):
        raise QueryCompileError(f"Identificatore non valido: {name!r}")
    return name


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        return [value]
    return list(value)


def _compile_condition(table: str, cond: Condition, params: _Params) -> str | None:
    col = ident(cond.column)
    op = cond.operator

    if op in _COMPARISONS:
        return f"{col} {_COMPARISONS[op]} {params.add(to_db_value(table, cond.column, cond.value))}"
    if op is Operator.IS:
        if cond.value is None:
            return f"{col} IS NULL"
        return f"{col} IS {params.add(to_db_value(table, cond.column, cond.value))}"
    if op is Operator.LIKE:
        return f"{col} LIKE {params.add(cond.value)}"
    if op is Operator.ILIKE:
        return f"{col} LIKE {params.add(cond.value)} COLLATE NOCASE"
    if op is Operator.IN:
        values = _as_list(cond.value)
        if not values:
            # lista vuota: nessuna clausola
            return None
        placeholders = ", ".join(params.add(to_db_value(table, cond.column, v)) for v in values)
        return f"{col} IN ({placeholders})"

    raise QueryCompileError(f"Operatore non gestito: {op!r}")


def _where(table: str, conditions: Sequence[Filter], params: _Params) -> str:
    clauses: list[str] = []
    for cond in conditions:
        if isinstance(cond, OrGroup):
            parts = [p for p in (_compile_condition(table, c, params) for c in cond.items) if p]
            if parts:
                clauses.append("(" + " OR ".join(parts) + ")")
            continue
        clause = _compile_condition(table, cond, params)
        if clause:
            clauses.append(clause)
    return f" WHERE {' AND '.join(clauses)}" if clauses else ""


def build_where(table: str, conditions: Sequence[Filter]) -> Statement:
    """Solo la clausola WHERE (con spazio iniziale) e i suoi parametri."""
    params = _Params()
    sql = _where(table, conditions, params)
    return Statement(sql, params.values)


def projection_sql(columns: Sequence[str], extra: Iterable[str] = ()) -> str:
    """Colonne semplici -> lista SQL; vuota o con '*' -> '*'."""
    cols = [c.strip() for c in columns if c.strip()]
    if not cols or "*" in cols:
        return "*"
    out = [ident(c) for c in cols]
    for key in extra:
        if key not in out:
            out.append(ident(key))
    return ", ".join(out)


def compile_select(desc: QueryDescriptor, columns: Sequence[str] = (), extra_columns: Iterable[str] = ()) -> Statement:
    table = ident(desc.table)
    params = _Params()

    sql = f"SELECT {projection_sql(columns, extra_columns)} FROM {table}"
    sql += _where(desc.table, desc.conditions, params)

    if desc.orders:
        order = ", ".join(f"{ident(o.column)} {'ASC' if o.ascending else 'DESC'}" for o in desc.orders)
        sql += f" ORDER BY {order}"

    if desc.limit is not None:
        sql += f" LIMIT {params.add(int(desc.limit))}"
    elif desc.offset is not None:
        # SQLite non accetta OFFSET senza LIMIT
        sql += " LIMIT -1"
    if desc.offset is not None:
        sql += f" OFFSET {params.add(int(desc.offset))}"

    return Statement(sql, params.values)


def compile_count(desc: QueryDescriptor) -> Statement:
    """Stesso WHERE della select, senza ordinamento né paginazione."""
    params = _Params()
    sql = f"SELECT COUNT(*) AS count FROM {ident(desc.table)}"
    sql += _where(desc.table, desc.conditions, params)
    return Statement(sql, params.values)


def compile_insert(table: str, row: dict[str, Any]) -> Statement:
    if not row:
        raise QueryCompileError("Insert senza colonne")
    params = _Params()
    cols = [ident(c) for c in row]
    values = [params.add(to_db_value(table, c, row[c])) for c in row]
    sql = f"INSERT INTO {ident(table)} ({', '.join(cols)}) VALUES ({', '.join(values)})"
    return Statement(sql, params.values)


def compile_update(table: str, values: dict[str, Any], conditions: Sequence[Filter]) -> Statement:
    if not values:
        raise QueryCompileError("Update senza colonne")
    params = _Params()
    sets = ", ".join(f"{ident(c)} = {params.add(to_db_value(table, c, v))}" for c, v in values.items())
    sql = f"UPDATE {ident(table)} SET {sets}"
    sql += _where(table, conditions, params)
    return Statement(sql, params.values)


def compile_delete(table: str, conditions: Sequence[Filter]) -> Statement:
    params = _Params()
    sql = f"DELETE FROM {ident(table)}"
    sql += _where(table, conditions, params)
    return Statement(sql, params.values)


def compile_select_in(table: str, column: str, values: Sequence[Any]) -> Statement:
    """SELECT * batch per le relazioni e per rileggere le righe scritte."""
    params = _Params()
    placeholders = ", ".join(params.add(v) for v in values)
    sql = f"SELECT * FROM {ident(table)} WHERE {ident(column)} IN ({placeholders})"
    return Statement(sql, params.values)
