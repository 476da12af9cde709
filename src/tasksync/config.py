# src/tasksync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (offline backend works without any).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKSYNC"

BACKEND_AUTO = "auto"
BACKEND_FIREBASE = "firebase"
BACKEND_OFFLINE = "offline"
BACKENDS = (BACKEND_AUTO, BACKEND_FIREBASE, BACKEND_OFFLINE)

load_dotenv(override=False)


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

    # ---- Backend selection ----
    backend: str

    # ---- Firebase ----
    firebase_api_key: str | None
    firebase_project_id: str | None
    firebase_auth_emulator_host: str | None
    http_timeout_seconds: float

    @property
    def firebase_configured(self) -> bool:
        return bool(self.firebase_api_key and self.firebase_project_id)

    @property
    def log_dir(self) -> Path:
        return self.data_dir

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasksync").strip() or "tasksync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasksync"))

        backend = _env(_k("BACKEND"), BACKEND_AUTO).strip().lower()
        if backend not in BACKENDS:
            backend = BACKEND_AUTO

        firebase_api_key = _first_env(_k("FIREBASE_API_KEY"), "FIREBASE_API_KEY", default=None)
        firebase_project_id = _first_env(
            _k("FIREBASE_PROJECT_ID"),
            "FIREBASE_PROJECT_ID",
            "GOOGLE_CLOUD_PROJECT",
            default=None,
        )
        # Same variable name the Firebase SDKs honor, so one emulator setup serves both.
        firebase_auth_emulator_host = _first_env(
            _k("FIREBASE_AUTH_EMULATOR_HOST"),
            "FIREBASE_AUTH_EMULATOR_HOST",
            default=None,
        )
        http_timeout_seconds = max(1.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 15.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            backend=backend,
            firebase_api_key=(firebase_api_key or "").strip() or None,
            firebase_project_id=(firebase_project_id or "").strip() or None,
            firebase_auth_emulator_host=(firebase_auth_emulator_host or "").strip() or None,
            http_timeout_seconds=http_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
