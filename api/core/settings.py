"""
Database settings, read once from the environment at process start.

Every consumer receives a `DatabaseSettings` instance from the composition
root (`api/main.py` or an ops tool). Nothing else reads `DB_*` variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from .errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}.")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}.") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}.")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}.")


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq-only query params such as sslmode.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


@dataclass(frozen=True)
class DatabaseSettings:
    data_path: str
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    database: str = "hospital_maintenance"
    url: str | None = None
    connection_limit: int = 5
    max_idle: int = 2
    acquire_timeout_s: float = 10.0
    statement_timeout_s: float = 10.0
    idle_timeout_s: float = 30.0
    wait_for_connections: bool = True
    queue_limit: int = 0
    apply_schema: bool = False

    def __post_init__(self) -> None:
        if not (self.data_path or "").strip():
            raise ConfigurationError(
                "DB_DATA_PATH is not set. The data directory must live outside the application directory."
            )
        if self.connection_limit < 1:
            raise ConfigurationError("Connection limit must be at least 1.")
        if self.max_idle < 0 or self.queue_limit < 0:
            raise ConfigurationError("Max idle and queue limit cannot be negative.")
        if min(self.acquire_timeout_s, self.statement_timeout_s, self.idle_timeout_s) <= 0:
            raise ConfigurationError("Timeouts must be positive.")
        if not self.url and not self.database:
            raise ConfigurationError("Either DATABASE_URL or DB_NAME must be set.")

    @property
    def min_size(self) -> int:
        return min(self.max_idle, self.connection_limit)

    def dsn(self) -> str:
        if self.url:
            return _sanitize_database_url(self.url)
        credentials = quote(self.user, safe="")
        if self.password:
            credentials += ":" + quote(self.password, safe="")
        return f"postgresql://{credentials}@{self.host}:{self.port}/{quote(self.database, safe='')}"

    def describe(self) -> str:
        """
        Connection target without credentials, for logs.
        """
        if self.url:
            parts = urlsplit(self.url)
            return f"{parts.hostname}:{parts.port or 5432}{parts.path}"
        return f"{self.host}:{self.port}/{self.database}"

    @classmethod
    def from_env(cls) -> DatabaseSettings:
        return cls(
            data_path=_env_str("DB_DATA_PATH"),
            host=_env_str("DB_HOST", "localhost"),
            port=_env_int("DB_PORT", 5432, minimum=1),
            user=_env_str("DB_USER", "postgres"),
            password=os.environ.get("DB_PASSWORD", ""),
            database=_env_str("DB_NAME", "hospital_maintenance"),
            url=_env_str("DATABASE_URL") or None,
            connection_limit=_env_int("DB_CONNECTION_LIMIT", 5, minimum=1),
            max_idle=_env_int("DB_MAX_IDLE", 2),
            acquire_timeout_s=_env_float("DB_ACQUIRE_TIMEOUT_S", 10.0),
            statement_timeout_s=_env_float("DB_STATEMENT_TIMEOUT_S", 10.0),
            idle_timeout_s=_env_float("DB_IDLE_TIMEOUT_S", 30.0),
            wait_for_connections=_env_bool("DB_WAIT_FOR_CONNECTIONS", True),
            queue_limit=_env_int("DB_QUEUE_LIMIT", 0),
            apply_schema=_env_bool("DB_APPLY_SCHEMA", False),
        )
