"""
Error taxonomy for the data layer.

The data layer never recovers on its own: it wraps store failures with enough
context to diagnose them and re-raises. Callers (routes, ops tools) decide
whether to retry, answer with an error response, or abort.
"""

from __future__ import annotations

import sys
from typing import Any

# Python runtimes that execute inside a browser.
_CLIENT_PLATFORMS = {"emscripten", "wasi"}


class DatabaseError(RuntimeError):
    pass


class ConfigurationError(DatabaseError):
    """
    Unsafe or missing configuration. Fatal, raised at startup only.
    """


class DatabaseConnectionError(DatabaseError, ConnectionError):
    """
    The store is unreachable.
    """


class PoolExhaustedError(DatabaseError):
    """
    No connection became free within the acquire timeout.
    """


class QueryError(DatabaseError):
    def __init__(self, message: str, *, sql: str, params: list[Any] | None = None) -> None:
        super().__init__(message)
        self.sql = sql
        self.params = list(params or [])

    def __str__(self) -> str:
        return f"{self.args[0]} (sql={self.sql!r}, params={self.params!r})"


class ClientEnvironmentError(DatabaseError, EnvironmentError):
    pass


def is_client_environment() -> bool:
    return sys.platform in _CLIENT_PLATFORMS


def ensure_server_environment() -> None:
    # Store access from a browser runtime is always a bug; fail before touching anything.
    if is_client_environment():
        raise ClientEnvironmentError("Database operations are not allowed on the client side.")
