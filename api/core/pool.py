"""
Connection pool manager.

`ConnectionPool` wraps an asyncpg pool. It is constructed once by the
composition root and handed to everything that needs the store; there is no
module-level pool.

Limits (see `DatabaseSettings`):
- max_size: connection limit
- min_size: connections kept open while idle
- max_inactive_connection_lifetime: idle connections are reaped after this
- acquire timeout: how long a caller may wait for a free connection
- wait_for_connections / queue_limit: reject instead of waiting when exhausted

asyncpg replaces dropped connections on the next acquire, so a restarted
server heals without restarting the app.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable

import asyncpg

from .errors import DatabaseConnectionError, PoolExhaustedError, ensure_server_environment
from .settings import DatabaseSettings

logger = logging.getLogger(__name__)

CONNECTION_CREATED = "connection_created"
CONNECTION_ERROR = "connection_error"
EVENTS = (CONNECTION_CREATED, CONNECTION_ERROR)

# Failures that mean "the store cannot be reached", as opposed to a bad statement.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncpg.PostgresConnectionError,
    asyncpg.InvalidAuthorizationSpecificationError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
)

Listener = Callable[..., Any]
PoolFactory = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class PoolStats:
    size: int
    idle: int
    in_use: int
    waiting: int
    min_size: int
    max_size: int

    @property
    def usage_percent(self) -> float:
        if self.max_size <= 0:
            return 0.0
        return round(self.in_use / self.max_size * 100, 1)


class ConnectionPool:
    def __init__(
        self,
        settings: DatabaseSettings,
        *,
        create_pool: PoolFactory = asyncpg.create_pool,
    ) -> None:
        self._settings = settings
        self._create_pool = create_pool
        self._pool: Any = None
        self._lock = asyncio.Lock()
        self._closed = False
        self._in_use = 0
        self._waiting = 0
        self._listeners: dict[str, list[Listener]] = {event: [] for event in EVENTS}

    @property
    def settings(self) -> DatabaseSettings:
        return self._settings

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def on(self, event: str, listener: Listener) -> None:
        """
        Register a lifecycle listener.

        `connection_created` listeners receive the new connection,
        `connection_error` listeners receive the exception.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown pool event: {event!r}")
        self._listeners[event].append(listener)

    def _emit(self, event: str, payload: Any) -> None:
        for listener in self._listeners[event]:
            try:
                listener(payload)
            except Exception:
                # Observers must never change the outcome of a pool operation.
                logger.exception("pool_listener_failed event=%s", event)

    async def _on_new_connection(self, connection: Any) -> None:
        logger.info("connection_created pid=%s", connection.get_server_pid())
        self._emit(CONNECTION_CREATED, connection)

    def _connection_failed(self, exc: BaseException) -> DatabaseConnectionError:
        logger.error("connection_error target=%s error=%s", self._settings.describe(), exc)
        self._emit(CONNECTION_ERROR, exc)
        return DatabaseConnectionError(f"Database is unreachable: {exc}")

    async def open(self) -> Any:
        """
        Create the underlying asyncpg pool if it does not exist yet.

        Called implicitly by `acquire()`; concurrent first callers share one pool.
        """
        ensure_server_environment()
        if self._closed:
            raise DatabaseConnectionError("Connection pool is closed.")
        if self._pool is not None:
            return self._pool

        async with self._lock:
            if self._pool is None:
                settings = self._settings
                try:
                    self._pool = await self._create_pool(
                        dsn=settings.dsn(),
                        min_size=settings.min_size,
                        max_size=settings.connection_limit,
                        max_inactive_connection_lifetime=settings.idle_timeout_s,
                        command_timeout=settings.statement_timeout_s,
                        init=self._on_new_connection,
                    )
                except CONNECTION_ERRORS as exc:
                    raise self._connection_failed(exc) from exc
                logger.info(
                    "pool_created target=%s max_size=%s min_size=%s",
                    settings.describe(),
                    settings.connection_limit,
                    settings.min_size,
                )
        return self._pool

    def _check_capacity(self) -> None:
        settings = self._settings
        if self._in_use < settings.connection_limit:
            return
        if not settings.wait_for_connections:
            raise PoolExhaustedError(
                f"All {settings.connection_limit} connections are in use and waiting is disabled."
            )
        if settings.queue_limit and self._waiting >= settings.queue_limit:
            raise PoolExhaustedError(
                f"All {settings.connection_limit} connections are in use "
                f"and {self._waiting} callers are already queued."
            )

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Any]:
        """
        Check out one connection; it goes back to the pool on every exit path.
        """
        pool = await self.open()
        self._check_capacity()

        timeout = self._settings.acquire_timeout_s
        self._waiting += 1
        try:
            connection = await pool.acquire(timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("pool_exhausted timeout_s=%s in_use=%s", timeout, self._in_use)
            raise PoolExhaustedError(
                f"No database connection became available within {timeout}s."
            ) from exc
        except CONNECTION_ERRORS as exc:
            raise self._connection_failed(exc) from exc
        finally:
            self._waiting -= 1

        self._in_use += 1
        try:
            yield connection
        finally:
            self._in_use -= 1
            await pool.release(connection)

    def stats(self) -> PoolStats:
        settings = self._settings
        if self._pool is None:
            return PoolStats(
                size=0,
                idle=0,
                in_use=0,
                waiting=self._waiting,
                min_size=settings.min_size,
                max_size=settings.connection_limit,
            )
        return PoolStats(
            size=self._pool.get_size(),
            idle=self._pool.get_idle_size(),
            in_use=self._in_use,
            waiting=self._waiting,
            min_size=self._pool.get_min_size(),
            max_size=self._pool.get_max_size(),
        )

    async def close(self) -> None:
        self._closed = True
        if self._pool is None:
            return None
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("pool_closed target=%s", self._settings.describe())
