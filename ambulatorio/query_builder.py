"""
Query builder compatibile con il client PostgREST/Supabase, eseguito su SQLite.

    res = client.from_("consultations") \
        .select("*, patient:patients (*)") \
        .eq("patient_id", pid) \
        .order("date_time", ascending=False) \
        .limit(10) \
        .execute()

Si esegue con execute() oppure con await; il risultato è sempre un
QueryResult {data, error, count?}: gli errori del database non escono mai
come eccezioni.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from .compiler import (
    QueryCompileError,
    Statement,
    compile_count,
    compile_delete,
    compile_insert,
    compile_select,
    compile_select_in,
    compile_update,
)
from .conditions import Condition, Operator, parse_or_filter
from .db import Database, new_uuid, utc_now_iso
from .descriptor import CountMode, Operation, OrderClause, QueryDescriptor
from .relation_fetcher import Row, fetch_relation
from .relations import resolve_foreign_key
from .schema import convert_row, has_column, primary_key
from .select_parser import ParsedSelect, parse_select

logger = logging.getLogger(__name__)

NOT_FOUND_CODE = "PGRST116"
PARSE_ERROR_CODE = "PGRST100"

# messaggio SQLite -> codice in stile PostgreSQL
_CONSTRAINT_CODES = [
    ("UNIQUE constraint failed", "23505"),
    ("FOREIGN KEY constraint failed", "23503"),
    ("NOT NULL constraint failed", "23502"),
    ("CHECK constraint failed", "23514"),
]


@dataclass
class QueryError:
    message: str
    code: str | None = None
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


@dataclass
class QueryResult:
    data: Any = None
    error: QueryError | None = None
    count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "data": self.data,
            "error": self.error.to_dict() if self.error else None,
        }
        if self.count is not None:
            out["count"] = self.count
        return out


def error_from_exception(exc: Exception) -> QueryError:
    if isinstance(exc, QueryCompileError):
        return QueryError(message=str(exc), code=PARSE_ERROR_CODE)

    if isinstance(exc, DBAPIError) and exc.orig is not None:
        message = str(exc.orig)
        if isinstance(exc, IntegrityError):
            for needle, code in _CONSTRAINT_CODES:
                if needle in message:
                    return QueryError(message=message, code=code)
        return QueryError(message=message, code=getattr(exc.orig, "sqlite_errorname", None))

    if isinstance(exc, SQLAlchemyError):
        return QueryError(message=str(exc), code=getattr(exc, "code", None))

    return QueryError(message=str(exc) or "Database error", code=type(exc).__name__)


def not_found_error() -> QueryError:
    return QueryError(message="No rows found", code=NOT_FOUND_CODE, details="The result contains 0 rows")


class QueryBuilder:
    """
    Un builder per ogni query: client.from_() ne crea sempre uno nuovo.
    La prima esecuzione viene memorizzata; un builder non gira mai due volte.
    """

    def __init__(self, database: Database, table: str) -> None:
        self._db = database
        self._desc = QueryDescriptor(table=table)
        self._result: QueryResult | None = None

    @classmethod
    def from_descriptor(cls, database: Database, descriptor: QueryDescriptor) -> QueryBuilder:
        qb = cls(database, descriptor.table)
        qb._desc = copy.deepcopy(descriptor)
        return qb

    @property
    def descriptor(self) -> QueryDescriptor:
        return self._desc

    # ----- operazioni -----
    def select(self, columns: str = "*", *, count: str | None = None, head: bool = False) -> QueryBuilder:
        if self._desc.operation is Operation.SELECT:
            self._desc.columns = columns or "*"
            self._desc.count = CountMode.EXACT if count else None
            self._desc.head = head
        else:
            # .select() dopo insert/update: ritorna le righe scritte
            self._desc.returning = True
            self._desc.returning_columns = columns or "*"
        return self

    def insert(self, data: dict[str, Any] | list[dict[str, Any]]) -> QueryBuilder:
        self._desc.operation = Operation.INSERT
        self._desc.data = data
        return self

    def update(self, data: dict[str, Any]) -> QueryBuilder:
        self._desc.operation = Operation.UPDATE
        self._desc.data = data
        return self

    def delete(self) -> QueryBuilder:
        self._desc.operation = Operation.DELETE
        return self

    # ----- filtri -----
    def _filter(self, op: Operator, column: str, value: Any) -> QueryBuilder:
        self._desc.conditions.append(Condition(op, column, value))
        return self

    def eq(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.EQ, column, value)

    def neq(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.NEQ, column, value)

    def gt(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.GT, column, value)

    def gte(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.GTE, column, value)

    def lt(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.LT, column, value)

    def lte(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.LTE, column, value)

    def is_(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(Operator.IS, column, value)

    def like(self, column: str, pattern: str) -> QueryBuilder:
        return self._filter(Operator.LIKE, column, pattern)

    def ilike(self, column: str, pattern: str) -> QueryBuilder:
        return self._filter(Operator.ILIKE, column, pattern)

    def in_(self, column: str, values: Iterable[Any]) -> QueryBuilder:
        # normalizzato in lista dal compilatore: None o uno scalare valgono come [valore]
        return self._filter(Operator.IN, column, values)

    def or_(self, filters: str) -> QueryBuilder:
        self._desc.conditions.append(parse_or_filter(filters))
        return self

    # ----- ordinamento / paginazione -----
    def order(self, column: str, *, ascending: bool = True) -> QueryBuilder:
        self._desc.orders.append(OrderClause(column, ascending))
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._desc.limit = count
        return self

    def range(self, start: int, end: int) -> QueryBuilder:
        self._desc.offset = start
        self._desc.limit = end - start + 1
        return self

    def single(self) -> QueryBuilder:
        self._desc.single = True
        return self

    # ----- esecuzione -----
    def execute(self) -> QueryResult:
        if self._result is None:
            self._result = self._run()
        return self._result

    async def _execute_async(self) -> QueryResult:
        return self.execute()

    def __await__(self):
        return self._execute_async().__await__()

    def _run(self) -> QueryResult:
        desc = self._desc
        try:
            with self._db.engine.begin() as conn:
                if desc.operation is Operation.INSERT:
                    return self._run_insert(conn)
                if desc.operation is Operation.UPDATE:
                    return self._run_update(conn)
                if desc.operation is Operation.DELETE:
                    return self._run_delete(conn)
                return self._run_select(conn)
        except Exception as exc:
            logger.error("Errore %s su %s: %s", desc.operation.value, desc.table, exc)
            return QueryResult(data=None, error=error_from_exception(exc))

    def _execute(self, conn: Connection, stmt: Statement):
        logger.debug("%s | params=%s", stmt.sql, stmt.params)
        return conn.execute(text(stmt.sql), stmt.params)

    def _shape(self, conn: Connection, raw_rows: Iterable[Any], parsed: ParsedSelect) -> list[Row]:
        """Conversione tipi, relazioni annidate, proiezione finale."""
        table = self._desc.table
        rows = [convert_row(table, dict(r)) for r in raw_rows]

        for relation in parsed.relations:
            fetch_relation(conn, table, rows, relation)

        wanted = [c for c in parsed.columns if c]
        if wanted and "*" not in wanted:
            keep = set(wanted) | {r.alias for r in parsed.relations}
            for row in rows:
                for key in [k for k in row if k not in keep]:
                    del row[key]
        return rows

    def _single_or_list(self, rows: list[Row]) -> QueryResult:
        if self._desc.single:
            if not rows:
                return QueryResult(data=None, error=not_found_error())
            return QueryResult(data=rows[0])
        return QueryResult(data=rows)

    def _run_select(self, conn: Connection) -> QueryResult:
        desc = self._desc
        count = None
        if desc.count is not None:
            count = self._execute(conn, compile_count(desc)).scalar_one()
        # head ha senso solo insieme al conteggio
        if desc.head and count is not None:
            return QueryResult(data=None, count=count)

        result = self._single_or_list(self._select_rows(conn))
        result.count = count
        return result

    def _select_rows(self, conn: Connection) -> list[Row]:
        """WHERE, ordinamento e paginazione del descriptor, più le relazioni richieste."""
        desc = self._desc
        parsed = parse_select(desc.projection)
        join_keys = [resolve_foreign_key(desc.table, r.table).column for r in parsed.relations]
        stmt = compile_select(desc, parsed.columns, join_keys)
        return self._shape(conn, self._execute(conn, stmt).mappings(), parsed)

    def _reselect(self, conn: Connection, column: str, keys: list[Any]) -> list[Row]:
        raw = list(self._execute(conn, compile_select_in(self._desc.table, column, keys)).mappings())
        by_key = {r[column]: r for r in raw}
        ordered = [by_key[k] for k in keys if k in by_key]
        return self._shape(conn, ordered, parse_select(self._desc.projection))

    def _run_insert(self, conn: Connection) -> QueryResult:
        desc = self._desc
        if desc.data is None:
            raise QueryCompileError("Insert senza dati")

        many = isinstance(desc.data, list)
        items = desc.data if many else [desc.data]
        table = desc.table
        pk = primary_key(table)

        written: list[Row] = []
        for item in items:
            row = dict(item)
            if row.get(pk) in (None, ""):
                row[pk] = new_uuid()
            if not row.get("created_at") and has_column(table, "created_at"):
                row["created_at"] = utc_now_iso()
            self._execute(conn, compile_insert(table, row))
            written.append(row)

        if desc.returning:
            rows = self._reselect(conn, pk, [r[pk] for r in written])
        else:
            rows = [convert_row(table, r) for r in written]

        if desc.single or not many:
            return QueryResult(data=rows[0] if rows else None)
        return QueryResult(data=rows)

    def _run_update(self, conn: Connection) -> QueryResult:
        desc = self._desc
        if not isinstance(desc.data, dict) or not desc.data:
            raise QueryCompileError("Update senza dati")

        values = dict(desc.data)
        if not values.get("updated_at") and has_column(desc.table, "updated_at"):
            values["updated_at"] = utc_now_iso()

        self._execute(conn, compile_update(desc.table, values, desc.conditions))
        if not desc.returning:
            return QueryResult(data=None)

        # rilettura con lo stesso WHERE, dopo la scrittura
        return self._single_or_list(self._select_rows(conn))

    def _run_delete(self, conn: Connection) -> QueryResult:
        self._execute(conn, compile_delete(self._desc.table, self._desc.conditions))
        return QueryResult(data=None)
