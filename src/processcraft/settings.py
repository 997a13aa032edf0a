from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/processcraft.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - JWT_SECRET_KEY: secret used to sign access tokens
    - JWT_ALGORITHM: signing algorithm (default: HS256)
    - ACCESS_TOKEN_EXPIRE_MINUTES: token lifetime in minutes (default: 1440)
    - BCRYPT_ROUNDS: bcrypt cost factor (default: 10)
    - LOG_LEVEL: root log level for the service (default: INFO)
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    jwt_secret_key: str
    jwt_algorithm: str
    access_token_expire_minutes: int
    bcrypt_rounds: int
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 1) -> int:
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
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/processcraft.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        jwt_secret_key=_get_env("JWT_SECRET_KEY", "dev-secret-key-change-me-before-deploying"),
        jwt_algorithm=_get_env("JWT_ALGORITHM", "HS256").strip(),
        access_token_expire_minutes=_parse_int(_get_env("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"), 1440),
        bcrypt_rounds=_parse_int(_get_env("BCRYPT_ROUNDS", "10"), 10, minimum=4),
        log_level=log_level,
    )
