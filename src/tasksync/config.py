# src/tasksync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Defaults run fully offline (in-memory backend).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKSYNC"

BACKEND_MEMORY = "memory"
BACKEND_FIREBASE = "firebase"
BACKENDS = (BACKEND_MEMORY, BACKEND_FIREBASE)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Backend ----
    backend: str
    users_collection: str
    tasks_collection: str

    # ---- Firebase ----
    firebase_api_key: Optional[str]
    firebase_project_id: Optional[str]
    firebase_credentials_path: Optional[Path]
    auth_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasksync").strip() or "tasksync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasksync"))

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        backend = _env(_k("BACKEND"), BACKEND_MEMORY).strip().lower()
        if backend not in BACKENDS:
            backend = BACKEND_MEMORY

        users_collection = _env(_k("USERS_COLLECTION"), "users").strip() or "users"
        tasks_collection = _env(_k("TASKS_COLLECTION"), "tasks").strip() or "tasks"

        # Accept the plain Firebase/Google names as fallbacks.
        firebase_api_key = _first_env(_k("FIREBASE_API_KEY"), "FIREBASE_API_KEY", default=None)
        firebase_project_id = _first_env(
            _k("FIREBASE_PROJECT_ID"), "GOOGLE_CLOUD_PROJECT", default=None
        )
        creds_raw = _first_env(
            _k("FIREBASE_CREDENTIALS"), "GOOGLE_APPLICATION_CREDENTIALS", default=None
        )
        firebase_credentials_path = Path(creds_raw).expanduser() if creds_raw else None

        auth_timeout_seconds = max(1.0, _env_float(_k("AUTH_TIMEOUT_SECONDS"), 10.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            console_enabled=console_enabled,
            backend=backend,
            users_collection=users_collection,
            tasks_collection=tasks_collection,
            firebase_api_key=firebase_api_key,
            firebase_project_id=firebase_project_id,
            firebase_credentials_path=firebase_credentials_path,
            auth_timeout_seconds=auth_timeout_seconds,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Load .env (without overriding real env vars) and build Settings once."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
