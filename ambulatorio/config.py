from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

APP_NAME = "Ambulatorio"
DB_FILENAME = "ambulatorio.db"
CONFIG_FILENAME = "config.json"

# In sviluppo: sovrascrivibile da .env
DB_ECHO = os.getenv("AMBULATORIO_DB_ECHO", "0").lower() in {"1", "true", "yes"}
LOG_LEVEL = os.getenv("AMBULATORIO_LOG_LEVEL", "INFO").upper()


def get_app_data_dir() -> Path:
    """
    Cartella dati dell'applicazione, dipendente dalla piattaforma.
    AMBULATORIO_DATA_DIR ha la precedenza (test, installazioni portabili).
    """
    override = os.getenv("AMBULATORIO_DATA_DIR")
    if override:
        return Path(override)

    if sys.platform == "win32":
        base = os.getenv("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_config_path() -> Path:
    """Il config.json sta sempre nella cartella dati di default."""
    app_dir = get_app_data_dir()
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir / CONFIG_FILENAME


def read_config() -> dict[str, Any]:
    """Legge config.json; file assente o corrotto -> config vuota."""
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("config.json non leggibile (%s): uso i default", e)
        return {}
    return data if isinstance(data, dict) else {}


def write_config(config: dict[str, Any]) -> None:
    get_config_path().write_text(json.dumps(config, indent=2), encoding="utf-8")


def get_database_dir() -> Path:
    """Cartella personalizzata da config.json se esiste, altrimenti quella di default."""
    custom = read_config().get("database_dir")
    if custom and Path(custom).is_dir():
        return Path(custom)
    return get_app_data_dir()


def get_database_path() -> Path:
    db_dir = get_database_dir()
    db_dir.mkdir(parents=True, exist_ok=True)
    return db_dir / DB_FILENAME


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
