from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - SQLITE_DB_PATH: path to the relational store file. Default './data/todos.db'
    - GUEST_STORE_PATH: path to the local key-value file used in guest mode. Default './data/guest.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - SESSION_COOKIE_NAME: cookie carrying the session token. Default 'session_token'
    - LOG_LEVEL: log level of the service loggers. Default 'INFO'
    - DEFAULT_FOLDER_COLOR: color tag given to folders created without one. Default 'blue-500'
    """

    sqlite_db_path: str
    guest_store_path: str
    cors_allow_origins: List[str]
    session_cookie_name: str
    log_level: str
    default_folder_color: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_log_level(value: str) -> str:
    level = value.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    return Settings(
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        guest_store_path=_get_env("GUEST_STORE_PATH", "./data/guest.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        session_cookie_name=_get_env("SESSION_COOKIE_NAME", "session_token").strip(),
        log_level=_parse_log_level(_get_env("LOG_LEVEL", "INFO")),
        default_folder_color=_get_env("DEFAULT_FOLDER_COLOR", "blue-500").strip(),
    )
