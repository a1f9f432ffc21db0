from __future__ import annotations

import enum
from dataclasses import dataclass


class Direction(str, enum.Enum):
    PARENT = "parent"  # la riga corrente ha la FK -> un solo oggetto collegato
    CHILD = "child"    # le righe collegate hanno la FK verso la corrente -> lista


@dataclass(frozen=True)
class ForeignKey:
    """
    column: chiave letta sulla riga corrente
    referenced_column: chiave confrontata sulla tabella collegata
    """
    column: str
    referenced_column: str
    direction: Direction


# tabella -> tabella referenziata -> (colonna FK, colonna referenziata)
FOREIGN_KEYS: dict[str, dict[str, tuple[str, str]]] = {
    "consultations": {
        "patients": ("patient_id", "id"),
        "session_types": ("session_type_id", "id"),
    },
    "invoices": {
        "consultations": ("consultation_id", "id"),
    },
    "payments": {
        "invoices": ("invoice_id", "id"),
    },
    "patients": {
        "practitioners": ("practitioner_id", "id"),
    },
    "session_types": {
        "practitioners": ("practitioner_id", "id"),
    },
    "conversations": {
        "practitioners": ("practitioner_id", "id"),
        "patients": ("patient_id", "id"),
    },
    "messages": {
        "conversations": ("conversation_id", "id"),
        "consultations": ("consultation_id", "id"),
    },
    "email_settings": {
        "practitioners": ("practitioner_id", "id"),
    },
    "email_templates": {
        "practitioners": ("practitioner_id", "id"),
    },
    "message_templates": {
        "practitioners": ("practitioner_id", "id"),
    },
    "scheduled_tasks": {
        "practitioners": ("practitioner_id", "id"),
        "consultations": ("consultation_id", "id"),
    },
    "medical_history_entries": {
        "patients": ("patient_id", "id"),
    },
    "saved_reports": {
        "practitioners": ("practitioner_id", "id"),
    },
    "audit_logs": {
        "practitioners": ("practitioner_id", "id"),
    },
}


def singularize(table: str) -> str:
    """Solo la 's' finale: 'categories' -> 'categorie' (limite noto)."""
    return table[:-1] if table.endswith("s") else table


def resolve_foreign_key(parent_table: str, child_table: str) -> ForeignKey:
    """
    Relazione tra la tabella corrente e quella richiesta nella select.

    1. regola dichiarata parent -> child (to-one)
    2. regola dichiarata child -> parent, invertita (to-many)
    3. convenzione: <parent al singolare>_id sulla tabella child, verso id
    """
    rule = FOREIGN_KEYS.get(parent_table, {}).get(child_table)
    if rule:
        fk_column, ref_column = rule
        return ForeignKey(fk_column, ref_column, Direction.PARENT)

    rule = FOREIGN_KEYS.get(child_table, {}).get(parent_table)
    if rule:
        fk_column, ref_column = rule
        return ForeignKey(ref_column, fk_column, Direction.CHILD)

    return ForeignKey("id", f"{singularize(parent_table)}_id", Direction.CHILD)
