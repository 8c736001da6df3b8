# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every value has a usable default, so a bare checkout just runs.
- Malformed values fall back to defaults instead of failing at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKDECK"

STORAGE_BACKENDS = ("sqlite", "json")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw.strip()).expanduser()


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = _env(name, default).lower()
    return raw if raw in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data (ignored by git) ----
    data_dir: Path
    storage_backend: str
    storage_path: Path
    storage_key: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck")
        log_level = _env(_k("LOG_LEVEL"), "INFO").upper()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))
        storage_backend = _env_choice(_k("STORAGE_BACKEND"), STORAGE_BACKENDS, "sqlite")
        default_file = "taskdeck.sqlite3" if storage_backend == "sqlite" else "taskdeck.json"
        storage_path = _env_path(_k("STORAGE_PATH"), data_dir / default_file)
        storage_key = _env(_k("STORAGE_KEY"), "td.todos.v2")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            storage_backend=storage_backend,
            storage_path=storage_path,
            storage_key=storage_key,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv(override=False)
    return Settings.from_env()
