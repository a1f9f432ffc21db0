"""
Autenticazione locale: nessun server, "login" = selezione del professionista.

La sessione corrente è salvata in app_config (key='current_user_id') e
sopravvive al riavvio dell'applicazione. La password è facoltativa: viene
verificata solo se il professionista ne ha impostata una.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select

from .auth_security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from .db import Database, new_uuid, utc_now_iso
from .models import AppConfig, Practitioner
from .query_builder import QueryError, QueryResult

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "current_user_id"


def user_dict(p: Practitioner) -> dict[str, Any]:
    return {
        "id": p.user_id,
        "email": p.email,
        "user_metadata": {"first_name": p.first_name, "last_name": p.last_name},
    }


def get_current_user_id(db: Database) -> str | None:
    with db.session() as s:
        row = s.get(AppConfig, CURRENT_USER_KEY)
        return row.value if row else None


def set_current_user(db: Database, user_id: str) -> None:
    with db.session() as s:
        s.merge(AppConfig(key=CURRENT_USER_KEY, value=user_id))


def clear_current_user(db: Database) -> None:
    with db.session() as s:
        row = s.get(AppConfig, CURRENT_USER_KEY)
        if row is not None:
            s.delete(row)


def get_practitioner_by_user_id(db: Database, user_id: str) -> Practitioner | None:
    with db.session() as s:
        return s.execute(select(Practitioner).where(Practitioner.user_id == user_id)).scalar_one_or_none()


def get_practitioner_by_email(db: Database, email: str) -> Practitioner | None:
    with db.session() as s:
        return s.execute(select(Practitioner).where(Practitioner.email == email.strip())).scalars().first()


def set_password(db: Database, email: str, password: str) -> bool:
    """Imposta la password del professionista con quell'email. False se non esiste."""
    if not email or not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password obbligatoria ({MIN_PASSWORD_LENGTH} caratteri minimo).")

    with db.session() as s:
        p = s.execute(select(Practitioner).where(Practitioner.email == email.strip())).scalars().first()
        if p is None:
            return False
        p.password_hash = hash_password(password)
        p.updated_at = utc_now_iso()
        return True


def create_practitioner(
    db: Database,
    first_name: str,
    last_name: str,
    email: str,
    practice_name: str | None = None,
    password: str | None = None,
) -> str:
    """Crea un profilo professionista e ritorna il suo user_id."""
    first_name, last_name, email = first_name.strip(), last_name.strip(), email.strip()
    if not first_name or not last_name or not email:
        raise ValueError("Nome, cognome ed email sono obbligatori.")

    with db.session() as s:
        exists = s.execute(select(Practitioner).where(Practitioner.email == email)).scalars().first()
        if exists:
            raise ValueError("Email già registrata.")

        now = utc_now_iso()
        p = Practitioner(
            user_id=new_uuid(),
            first_name=first_name,
            last_name=last_name,
            email=email,
            practice_name=practice_name or None,
            password_hash=hash_password(password) if password else None,
            created_at=now,
            updated_at=now,
        )
        s.add(p)
        s.flush()
        logger.info("Creato professionista %s (%s)", p.id, email)
        return p.user_id


def list_practitioners(db: Database) -> list[dict[str, Any]]:
    """Profili selezionabili al login; l'hash non esce mai, solo has_password."""
    with db.session() as s:
        rows = s.execute(
            select(Practitioner).order_by(Practitioner.last_name, Practitioner.first_name)
        ).scalars().all()
        return [
            {
                "id": p.id,
                "user_id": p.user_id,
                "first_name": p.first_name,
                "last_name": p.last_name,
                "email": p.email,
                "practice_name": p.practice_name,
                "has_password": bool(p.password_hash),
            }
            for p in rows
        ]


class LocalAuth:
    """Superficie auth del client: stessi risultati {data: {user}, error} del client remoto."""

    def __init__(self, database: Database, current_user_id: str | None = None) -> None:
        self._db = database
        self._current_user_id = current_user_id

    @property
    def current_user_id(self) -> str | None:
        return self._current_user_id

    def get_user(self) -> QueryResult:
        if not self._current_user_id:
            self._current_user_id = get_current_user_id(self._db)
        if not self._current_user_id:
            return QueryResult(data={"user": None}, error=QueryError(message="Non autenticato"))

        p = get_practitioner_by_user_id(self._db, self._current_user_id)
        if p is None:
            # sessione orfana: utente senza profilo
            user = {"id": self._current_user_id, "email": "", "user_metadata": {}}
        else:
            user = user_dict(p)
        return QueryResult(data={"user": user})

    def sign_in_with_password(self, email: str, password: str | None = None) -> QueryResult:
        try:
            p = get_practitioner_by_email(self._db, email)
            if p is None:
                return QueryResult(data={"user": None}, error=QueryError(message="Credenziali non valide"))
            if p.password_hash and (not password or not verify_password(password, p.password_hash)):
                return QueryResult(data={"user": None}, error=QueryError(message="Password errata"))

            set_current_user(self._db, p.user_id)
        except Exception as exc:
            logger.error("Login fallito per %s: %s", email, exc)
            return QueryResult(data={"user": None}, error=QueryError(message=str(exc)))

        self._current_user_id = p.user_id
        logger.info("Login: %s", email)
        return QueryResult(data={"user": user_dict(p)})

    def sign_out(self) -> QueryResult:
        try:
            clear_current_user(self._db)
        except Exception as exc:
            logger.error("Logout fallito: %s", exc)
            return QueryResult(error=QueryError(message=str(exc)))
        self._current_user_id = None
        return QueryResult()
