from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'json' (default) or 'memory'
    - DATA_FOLDER: folder holding todos.json and backup snapshots. Default './data'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - NOTIFICATIONS_ENABLED: 'false' to deny the reminder permission (default: true)
    - NOTIFICATION_GRACE_SECONDS: how far in the past a missed reminder is still
      delivered on startup (default: 60)
    - TIMEZONE: IANA zone name used for local dates and times; system local when unset
    - GOOGLE_CALENDAR_ID: calendar used for import/export (default: 'primary')
    - GOOGLE_CALENDAR_API_BASE_URL: Calendar v3 REST base url
    - GOOGLE_IMPORT_MAX_RESULTS: max events fetched per sync (default: 100)
    - LOG_LEVEL: logging level name (default: INFO)
    - HOST / PORT: bind address for `run()` (default: 127.0.0.1:3000)
    """

    persistence_backend: str
    data_folder: str
    cors_allow_origins: List[str]
    notifications_enabled: bool
    notification_grace_seconds: int
    timezone: Optional[str]
    google_calendar_id: str
    google_api_base_url: str
    google_import_max_results: int
    log_level: str
    host: str
    port: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        # Star will be handled in main via allow_origins=["*"]
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "json").strip().lower()
    if backend not in {"memory", "json"}:
        # Fallback to the file store if unsupported
        backend = "json"

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    tz_name = os.getenv("TIMEZONE", "").strip() or None

    return Settings(
        persistence_backend=backend,
        data_folder=_get_env("DATA_FOLDER", "./data").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        notifications_enabled=_parse_bool(_get_env("NOTIFICATIONS_ENABLED", "true"), True),
        notification_grace_seconds=_parse_int(_get_env("NOTIFICATION_GRACE_SECONDS", "60"), 60),
        timezone=tz_name,
        google_calendar_id=_get_env("GOOGLE_CALENDAR_ID", "primary").strip(),
        google_api_base_url=_get_env(
            "GOOGLE_CALENDAR_API_BASE_URL", "https://www.googleapis.com/calendar/v3"
        ).rstrip("/"),
        google_import_max_results=_parse_int(_get_env("GOOGLE_IMPORT_MAX_RESULTS", "100"), 100, minimum=1),
        log_level=log_level,
        host=_get_env("HOST", "127.0.0.1").strip(),
        port=_parse_int(_get_env("PORT", "3000"), 3000, minimum=1),
    )
