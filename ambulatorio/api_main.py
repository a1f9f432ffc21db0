from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .auth_service import create_practitioner, list_practitioners, set_password
from .client import LocalClient
from .config import DB_FILENAME, configure_logging, get_app_data_dir, get_database_dir, read_config, write_config
from .db import Database
from .descriptor import QueryDescriptor
from .seed import seed_base

logger = logging.getLogger(__name__)

app = FastAPI(title="Ambulatorio API", version="1.0.0")

# Unico database del processo: aperto al primo utilizzo
database = Database()



# Startup

@app.on_event("startup")
def startup() -> None:
    configure_logging()
    database.open()
    seed_base(database)



# Schemi

class SelectOptionsIn(BaseModel):
    count: str | None = None
    head: bool = False


class DescriptorIn(BaseModel):
    """Forma serializzata di una query, con i nomi usati dal client JS."""
    model_config = ConfigDict(extra="ignore")

    table: str | None = None
    operation: str = "select"
    columns: str | None = None
    selectOptions: SelectOptionsIn | None = None
    data: dict[str, Any] | list[dict[str, Any]] | None = None
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    orders: list[dict[str, Any]] = Field(default_factory=list)
    limitCount: int | None = None
    offsetCount: int | None = None
    singleResult: bool = False
    returnSelect: bool = False
    returnSelectColumns: str | None = None


class LoginIn(BaseModel):
    email: str
    password: str | None = None


class SetPasswordIn(BaseModel):
    email: str
    password: str


class PractitionerCreateIn(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    practice_name: str | None = None
    password: str | None = None


class DatabaseDirIn(BaseModel):
    database_dir: str | None = None



# DB endpoint

@app.post("/api/db")
def api_db(payload: DescriptorIn):
    try:
        descriptor = QueryDescriptor.from_dict(payload.model_dump(exclude_none=True))
    except (ValueError, KeyError) as e:
        return JSONResponse(status_code=400, content={"data": None, "error": {"message": str(e)}})

    return LocalClient(database).run(descriptor).to_dict()



# AUTH endpoints

@app.post("/api/auth/login")
def login(payload: LoginIn) -> dict[str, Any]:
    return LocalClient(database).auth.sign_in_with_password(payload.email, payload.password).to_dict()


@app.put("/api/auth/login")
def api_set_password(payload: SetPasswordIn) -> dict[str, Any]:
    try:
        found = set_password(database, payload.email, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not found:
        raise HTTPException(status_code=404, detail="Professionista non trovato")
    return {"success": True}


@app.get("/api/auth/user")
def api_user() -> dict[str, Any]:
    return LocalClient(database).auth.get_user().to_dict()


@app.post("/api/auth/logout")
def logout() -> dict[str, Any]:
    res = LocalClient(database).auth.sign_out()
    return {"error": res.error.to_dict() if res.error else None}


@app.get("/api/auth/practitioners")
def api_practitioners() -> list[dict]:
    return list_practitioners(database)


@app.post("/api/auth/practitioners")
def api_create_practitioner(payload: PractitionerCreateIn) -> dict[str, Any]:
    try:
        user_id = create_practitioner(
            database,
            payload.first_name,
            payload.last_name,
            payload.email,
            practice_name=payload.practice_name,
            password=payload.password,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    seed_base(database)
    return {"ok": True, "user_id": user_id}



# Impostazioni: posizione del database

def _database_info() -> dict[str, Any]:
    config = read_config()
    current_dir = get_database_dir()
    db_path = current_dir / DB_FILENAME
    return {
        "current_dir": str(current_dir),
        "default_dir": str(get_app_data_dir()),
        "db_path": str(db_path),
        "db_exists": db_path.exists(),
        "is_custom": bool(config.get("database_dir")),
    }


@app.get("/api/settings/database")
def api_get_database_settings() -> dict[str, Any]:
    return _database_info()


@app.post("/api/settings/database")
def api_set_database_dir(payload: DatabaseDirIn) -> dict[str, Any]:
    """
    Sposta il database in un'altra cartella (None = torna al default).
    La cartella deve esistere ed essere scrivibile; il file viene riaperto al prossimo uso.
    """
    new_dir = payload.database_dir
    if new_dir:
        path = Path(new_dir)
        if not path.is_dir():
            raise HTTPException(status_code=400, detail=f"La cartella non esiste: {new_dir}")
        if not os.access(path, os.W_OK):
            raise HTTPException(status_code=400, detail=f"Permesso di scrittura negato: {new_dir}")

    config = read_config()
    if new_dir:
        config["database_dir"] = str(Path(new_dir).resolve())
    else:
        config.pop("database_dir", None)
    write_config(config)

    database.reset_path()
    logger.info("Cartella database: %s", new_dir or "default")

    info = _database_info()
    info["success"] = True
    info["message"] = f"Database spostato in: {info['current_dir']}" if new_dir else "Ripristinata la cartella di default"
    return info
