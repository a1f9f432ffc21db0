from __future__ import annotations

from typing import Any

from .auth_service import LocalAuth
from .db import Database
from .descriptor import QueryDescriptor
from .query_builder import QueryBuilder, QueryResult


class LocalClient:
    """
    Client locale con la stessa forma del client Supabase:

        client = LocalClient(Database())
        res = client.from_("patients").select("*").eq("id", pid).single().execute()
        user = client.auth.get_user().data["user"]
    """

    def __init__(self, database: Database, current_user_id: str | None = None) -> None:
        self.database = database
        self.auth = LocalAuth(database, current_user_id)

    def from_(self, table: str) -> QueryBuilder:
        return QueryBuilder(self.database, table)

    table = from_

    def run(self, descriptor: QueryDescriptor | dict[str, Any]) -> QueryResult:
        """
        Esegue un descriptor già costruito (es. ricevuto da /api/db).
        ValueError se non è né un QueryDescriptor né un dict valido.
        """
        if isinstance(descriptor, dict):
            descriptor = QueryDescriptor.from_dict(descriptor)
        elif not isinstance(descriptor, QueryDescriptor):
            raise ValueError(f"atteso un oggetto, ricevuto {type(descriptor).__name__}")
        return QueryBuilder.from_descriptor(self.database, descriptor).execute()
