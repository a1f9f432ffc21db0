from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from .conditions import Filter, condition_from_dict, condition_to_dict


class Operation(str, enum.Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class CountMode(str, enum.Enum):
    EXACT = "exact"


@dataclass(frozen=True)
class OrderClause:
    column: str
    ascending: bool = True


@dataclass
class QueryDescriptor:
    """Una singola query: costruita, compilata ed eseguita una volta sola."""

    table: str
    operation: Operation = Operation.SELECT
    columns: str = "*"
    conditions: list[Filter] = field(default_factory=list)
    orders: list[OrderClause] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    single: bool = False
    count: CountMode | None = None
    head: bool = False
    data: dict[str, Any] | list[dict[str, Any]] | None = None
    returning: bool = False
    returning_columns: str | None = None

    @property
    def projection(self) -> str:
        """Select applicata alle righe restituite (anche dopo insert/update)."""
        if self.operation is Operation.SELECT:
            return self.columns or "*"
        return self.returning_columns or "*"

    def to_dict(self) -> dict[str, Any]:
        """Forma serializzata usata da /api/db."""
        out: dict[str, Any] = {
            "table": self.table,
            "operation": self.operation.value,
            "columns": self.columns,
            "conditions": [condition_to_dict(c) for c in self.conditions],
            "orders": [{"column": o.column, "ascending": o.ascending} for o in self.orders],
            "singleResult": self.single,
            "returnSelect": self.returning,
        }
        if self.count is not None or self.head:
            out["selectOptions"] = {"count": self.count.value if self.count else None, "head": self.head}
        if self.data is not None:
            out["data"] = self.data
        if self.limit is not None:
            out["limitCount"] = self.limit
        if self.offset is not None:
            out["offsetCount"] = self.offset
        if self.returning_columns is not None:
            out["returnSelectColumns"] = self.returning_columns
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> QueryDescriptor:
        """Ricostruisce un descriptor; ValueError se la forma non è valida."""
        table = raw.get("table")
        if not table or not isinstance(table, str):
            raise ValueError("Descriptor senza tabella")

        try:
            operation = Operation(raw.get("operation") or "select")
        except ValueError:
            raise ValueError(f"Operazione non supportata: {raw.get('operation')!r}") from None

        options = raw.get("selectOptions") or {}
        conditions = raw.get("conditions") or []
        orders = raw.get("orders") or []
        if not isinstance(options, dict):
            raise ValueError("selectOptions deve essere un oggetto")
        if not isinstance(conditions, list) or not all(isinstance(c, dict) for c in conditions):
            raise ValueError("conditions deve essere una lista di oggetti")
        if not isinstance(orders, list) or not all(isinstance(o, dict) and "column" in o for o in orders):
            raise ValueError("orders deve essere una lista di oggetti con 'column'")
        count = options.get("count")

        return cls(
            table=table,
            operation=operation,
            columns=raw.get("columns") or "*",
            conditions=[condition_from_dict(c) for c in conditions],
            orders=[OrderClause(str(o["column"]), o.get("ascending", True) is not False) for o in orders],
            limit=raw.get("limitCount"),
            offset=raw.get("offsetCount"),
            single=bool(raw.get("singleResult")),
            count=CountMode.EXACT if count else None,
            head=bool(options.get("head")),
            data=raw.get("data"),
            returning=bool(raw.get("returnSelect")),
            returning_columns=raw.get("returnSelectColumns"),
        )
