"""Fixture comuni: database temporaneo per ogni test."""
from __future__ import annotations

import pytest
from sqlalchemy import event

from ambulatorio.client import LocalClient
from ambulatorio.db import Database


@pytest.fixture(autouse=True)
def app_data_dir(tmp_path, monkeypatch):
    """config.json e database di default dentro la cartella del test."""
    data_dir = tmp_path / "appdata"
    monkeypatch.setenv("AMBULATORIO_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture()
def db(tmp_path):
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture()
def client(db):
    return LocalClient(db)


@pytest.fixture()
def practitioner(client):
    res = client.from_("practitioners").insert({
        "user_id": "user-1",
        "first_name": "Anna",
        "last_name": "Verdi",
        "email": "anna@studio.local",
    }).select().execute()
    assert res.error is None, res.error
    return res.data


@pytest.fixture()
def patient(client, practitioner):
    res = client.from_("patients").insert({
        "practitioner_id": practitioner["id"],
        "gender": "F",
        "first_name": "Giulia",
        "last_name": "Neri",
        "birth_date": "1990-05-01",
        "phone": "3331234567",
    }).select().execute()
    assert res.error is None, res.error
    return res.data


class StatementCounter:
    def __init__(self) -> None:
        self.statements: list[str] = []

    def reset(self) -> None:
        self.statements.clear()

    def matching(self, fragment: str) -> list[str]:
        return [s for s in self.statements if fragment in s]


@pytest.fixture()
def statements(db):
    """Registra ogni statement SQL eseguito sull'engine."""
    counter = StatementCounter()

    def record(conn, cursor, statement, parameters, context, executemany):
        counter.statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", record)
    yield counter
    event.remove(db.engine, "before_cursor_execute", record)
