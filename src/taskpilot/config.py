# src/taskpilot/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time (the auth token lives in the credential store).
- Components receive settings explicitly; get_settings() is only for the composition root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKPILOT"

DEFAULT_API_BASE_URL = "https://api.grahak24.com"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
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

    # ---- Backend ----
    api_base_url: str
    http_connect_timeout: float
    http_read_timeout: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    credentials_path: Path

    # ---- Client-side rules ----
    min_due_lead_seconds: int
    search_min_chars: int
    search_debounce_seconds: float

    # ---- Reminders / console ----
    reminder_poll_seconds: float
    console_enabled: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskpilot").strip() or "taskpilot"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_base_url = _env(_k("API_BASE_URL"), DEFAULT_API_BASE_URL).strip().rstrip("/")
        if not api_base_url:
            api_base_url = DEFAULT_API_BASE_URL

        http_connect_timeout = _env_float(_k("HTTP_CONNECT_TIMEOUT_SECONDS"), 5.0)
        http_read_timeout = _env_float(_k("HTTP_READ_TIMEOUT_SECONDS"), 30.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskpilot"))
        credentials_path = _env_path(_k("CREDENTIALS_PATH"), data_dir / "credentials.json")

        min_due_lead_seconds = max(0, _env_int(_k("MIN_DUE_LEAD_SECONDS"), 60))
        search_min_chars = max(1, _env_int(_k("SEARCH_MIN_CHARS"), 3))
        search_debounce_seconds = max(0.0, _env_float(_k("SEARCH_DEBOUNCE_SECONDS"), 0.4))

        reminder_poll_seconds = max(0.5, _env_float(_k("REMINDER_POLL_SECONDS"), 15.0))
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_base_url=api_base_url,
            http_connect_timeout=http_connect_timeout,
            http_read_timeout=http_read_timeout,
            data_dir=data_dir,
            credentials_path=credentials_path,
            min_due_lead_seconds=min_due_lead_seconds,
            search_min_chars=search_min_chars,
            search_debounce_seconds=search_debounce_seconds,
            reminder_poll_seconds=reminder_poll_seconds,
            console_enabled=console_enabled,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
