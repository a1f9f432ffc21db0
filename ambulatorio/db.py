from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import DB_ECHO, get_database_path

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base ORM per tutti i modelli."""
    pass


def new_uuid() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    """Timestamp ISO 8601 in UTC, millisecondi e suffisso Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Handle unico sul file SQLite dell'applicazione.

    - apertura lazy al primo utilizzo (schema + migrazioni additive)
    - una sola istanza per processo, passata esplicitamente ai client
    - open()/close() serializzati: FastAPI li chiama da più thread
    - close() idempotente
    """

    def __init__(self, path: str | Path | None = None, echo: bool = DB_ECHO) -> None:
        self._path = Path(path) if path is not None else None
        self._echo = echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        with self._lock:
            if self._path is None:
                self._path = get_database_path()
            return self._path

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        engine = self._engine
        if engine is None:
            engine = self.open()
        return engine

    def open(self) -> Engine:
        with self._lock:
            if self._engine is not None:
                return self._engine

            # evita import circolare: migrations -> models -> db
            from .migrations import init_schema

            path = self.path
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Apertura database: %s", path)

            engine = create_engine(
                f"sqlite:///{path}",
                echo=self._echo,
                future=True,
                # FastAPI esegue gli endpoint sync in un threadpool
                connect_args={"check_same_thread": False},
            )
            event.listen(engine, "connect", _set_sqlite_pragmas)

            try:
                init_schema(engine)
            except Exception:
                engine.dispose()
                raise

            self._session_factory = sessionmaker(
                bind=engine,
                autoflush=False,
                autocommit=False,
                future=True,
                expire_on_commit=False,
            )
            self._engine = engine
            return engine

    def close(self) -> None:
        with self._lock:
            if self._engine is None:
                return
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database chiuso: %s", self._path)

    def reset_path(self, path: str | Path | None = None) -> None:
        """Chiude e punta a un nuovo file (o a quello da config.json se None)."""
        with self._lock:
            self.close()
            self._path = Path(path) if path is not None else None

    def _get_session_factory(self) -> sessionmaker[Session]:
        with self._lock:
            if self._session_factory is None:
                self.open()
            assert self._session_factory is not None
            return self._session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager per gestire correttamente la sessione ORM:
        - commit se tutto ok
        - rollback su eccezioni
        - close sempre
        """
        session: Session = self._get_session_factory()()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
