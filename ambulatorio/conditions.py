from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union


class Operator(str, enum.Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IS = "is"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"


@dataclass(frozen=True)
class Condition:
    operator: Operator
    column: str
    value: Any = None


@dataclass(frozen=True)
class OrGroup:
    """Condizioni in OR, compilate tra parentesi."""
    items: tuple[Condition, ...] = field(default_factory=tuple)


Filter = Union[Condition, OrGroup]

# Operatori ammessi dentro una stringa or=(...); tutto il resto diventa eq
OR_OPERATORS = {
    Operator.EQ,
    Operator.NEQ,
    Operator.GT,
    Operator.GTE,
    Operator.LT,
    Operator.LTE,
    Operator.LIKE,
    Operator.ILIKE,
    Operator.IS,
}

_IS_LITERALS = {"null": None, "true": True, "false": False}


def parse_or_filter(expr: str) -> OrGroup:
    """
    Interpreta la mini-sintassi PostgREST "col.op.valore,col.op.valore".
    Es: "first_name.ilike.%mar%,last_name.ilike.%mar%"

    Le parti senza due punti separatori vengono ignorate.
    """
    items: list[Condition] = []
    for part in expr.split(","):
        part = part.strip()
        column, sep, rest = part.partition(".")
        if not sep:
            continue
        op_name, sep, value = rest.partition(".")
        if not sep:
            continue

        try:
            op = Operator(op_name)
        except ValueError:
            op = Operator.EQ
        if op not in OR_OPERATORS:
            op = Operator.EQ

        parsed: Any = value
        if op is Operator.IS:
            parsed = _IS_LITERALS.get(value.lower(), value)
        items.append(Condition(op, column.strip(), parsed))
    return OrGroup(tuple(items))


def condition_from_dict(raw: dict[str, Any]) -> Filter:
    """Condizione nel formato serializzato dal client: {"type", "column", "value"}."""
    kind = raw.get("type")
    if kind == "or":
        expr = raw.get("value") or raw.get("column") or ""
        return parse_or_filter(str(expr))
    try:
        op = Operator(kind)
    except ValueError:
        raise ValueError(f"Operatore di filtro non supportato: {kind!r}") from None
    return Condition(op, str(raw.get("column", "")), raw.get("value"))


def condition_to_dict(cond: Filter) -> dict[str, Any]:
    if isinstance(cond, OrGroup):
        expr = ",".join(f"{c.column}.{c.operator.value}.{_or_literal(c.value)}" for c in cond.items)
        return {"type": "or", "column": expr, "value": expr}
    return {"type": cond.operator.value, "column": cond.column, "value": cond.value}


def _or_literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
