"""
Parser delle stringhe di select in stile PostgREST.

    "*, consultation:consultations (*, patient:patients (*))"

diventa la lista di colonne semplici ["*"] più un albero di RelationSpec.
Le parentesi sono bilanciate a qualsiasi profondità; un frammento non
interpretabile (es. parentesi non chiuse) resta una colonna semplice.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_ALIASED = re.compile(rf"^\s*({_IDENT})\s*:\s*({_IDENT})\s*\((.*)\)\s*$", re.DOTALL)
_BARE = re.compile(rf"^\s*({_IDENT})\s*\((.*)\)\s*$", re.DOTALL)


@dataclass
class RelationSpec:
    alias: str
    table: str
    columns: str = "*"
    nested: list[RelationSpec] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.strip() for c in self.columns.split(",") if c.strip()] or ["*"]

    def count(self) -> int:
        """Numero di relazioni nell'albero, questa inclusa."""
        return 1 + sum(n.count() for n in self.nested)


@dataclass
class ParsedSelect:
    columns: list[str]
    relations: list[RelationSpec]


def split_top_level(text: str) -> list[str]:
    """Divide sulle virgole fuori dalle parentesi."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")" and depth > 0:
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def _balanced(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _build(alias: str, table: str, inner: str) -> RelationSpec:
    parsed = parse_select(inner)
    return RelationSpec(
        alias=alias,
        table=table,
        columns=", ".join(parsed.columns) if parsed.columns else "*",
        nested=parsed.relations,
    )


def parse_select(text: str | None) -> ParsedSelect:
    if not text:
        return ParsedSelect(columns=[], relations=[])

    items = split_top_level(text)
    relations: list[RelationSpec] = []
    leftovers: list[str] = []

    # 1) relazioni con alias: alias:tabella(...)
    for item in items:
        m = _ALIASED.match(item)
        if m and _balanced(m.group(3)):
            alias, table, inner = m.groups()
            if any(r.alias == alias for r in relations):
                continue
            relations.append(_build(alias, table, inner))
        else:
            leftovers.append(item)

    # 2) relazioni senza alias: tabella(...)
    captured = {r.table for r in relations}
    columns: list[str] = []
    for item in leftovers:
        m = _BARE.match(item)
        if m and _balanced(m.group(2)):
            table, inner = m.groups()
            if table in captured or any(r.alias == table for r in relations):
                continue
            relations.append(_build(table, table, inner))
            continue

        # 3) colonne semplici
        col = item.strip()
        if col:
            columns.append(col)

    return ParsedSelect(columns=columns, relations=relations)
