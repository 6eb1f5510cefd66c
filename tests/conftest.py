"""
Shared fixtures: in-memory stand-ins for asyncpg's pool and connections.

`FakeStore` answers statements through handlers registered by substring, so
each test only teaches it the SQL it needs. Every statement yields to the
event loop first, which interleaves concurrent callers the way a real server
would, while the handler body itself runs atomically.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from core.db import Database
from core.pool import ConnectionPool
from core.settings import DatabaseSettings

Handler = Callable[[str, tuple], tuple[list[dict], str]]


class FakeStore:
    def __init__(self) -> None:
        self.handlers: list[tuple[str, Handler]] = []
        self.calls: list[tuple[str, tuple]] = []
        self.counters: dict[tuple[str, int], int] = {}
        self.fail_on: dict[str, BaseException] = {}
        self.commit_error: BaseException | None = None

    def on(self, fragment: str, handler: Handler) -> None:
        self.handlers.append((fragment, handler))

    async def run(self, sql: str, args: tuple) -> tuple[list[dict], str]:
        await asyncio.sleep(0)
        self.calls.append((sql, args))
        for fragment, exc in self.fail_on.items():
            if fragment in sql:
                raise exc
        for fragment, handler in self.handlers:
            if fragment in sql:
                return handler(sql, args)
        return [], "SELECT 0"


def install_counter_handlers(store: FakeStore) -> None:
    def seed(sql: str, args: tuple) -> tuple[list[dict], str]:
        key = (args[0], args[1])
        if key in store.counters:
            return [], "INSERT 0 0"
        store.counters[key] = 0
        return [], "INSERT 0 1"

    def increment(sql: str, args: tuple) -> tuple[list[dict], str]:
        key = (args[0], args[1])
        if key not in store.counters:
            return [], "UPDATE 0"
        store.counters[key] += 1
        return [{"counter": store.counters[key]}], "UPDATE 1"

    def select(sql: str, args: tuple) -> tuple[list[dict], str]:
        key = (args[0], args[1])
        if key not in store.counters:
            return [], "SELECT 0"
        return [{"counter": store.counters[key]}], "SELECT 1"

    store.on("INSERT INTO counters", seed)
    store.on("UPDATE counters", increment)
    store.on("SELECT counter", select)


class FakeStatement:
    def __init__(self, connection: FakeConnection, sql: str) -> None:
        self._connection = connection
        self._sql = sql
        self._status = ""

    async def fetch(self, *args: Any) -> list[dict]:
        rows, self._status = await self._connection.store.run(self._sql, args)
        return rows

    def get_statusmsg(self) -> str:
        return self._status


class FakeTransaction:
    """
    start/commit/rollback, as on asyncpg.transaction.Transaction.
    """

    def __init__(self, connection: FakeConnection) -> None:
        self._connection = connection

    async def start(self) -> None:
        self._connection.transactions.append("begin")

    async def commit(self) -> None:
        error = self._connection.store.commit_error
        if error is not None:
            raise error
        self._connection.transactions.append("commit")

    async def rollback(self) -> None:
        self._connection.transactions.append("rollback")


class FakeConnection:
    _next_pid = 1000

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.prepared: list[str] = []
        self.fetched: list[tuple[str, tuple]] = []
        self.transactions: list[str] = []
        FakeConnection._next_pid += 1
        self._pid = FakeConnection._next_pid

    def get_server_pid(self) -> int:
        return self._pid

    async def fetch(self, sql: str, *args: Any) -> list[dict]:
        self.fetched.append((sql, args))
        rows, _ = await self.store.run(sql, args)
        return rows

    async def prepare(self, sql: str) -> FakeStatement:
        self.prepared.append(sql)
        return FakeStatement(self, sql)

    def transaction(self) -> FakeTransaction:
        return FakeTransaction(self)


class FakePool:
    """
    Mimics the parts of asyncpg.Pool that `ConnectionPool` uses.
    """

    def __init__(self, store: FakeStore, *, max_size: int, min_size: int, init=None, **kwargs: Any) -> None:
        self.store = store
        self.kwargs = kwargs
        self._max_size = max_size
        self._min_size = min_size
        self._init = init
        self._slots = asyncio.Semaphore(max_size)
        self._idle: list[FakeConnection] = []
        self.connections: list[FakeConnection] = []
        self.released: list[FakeConnection] = []
        self.closed = False

    async def acquire(self, *, timeout: float | None = None) -> FakeConnection:
        await asyncio.wait_for(self._slots.acquire(), timeout=timeout)
        if self._idle:
            return self._idle.pop()
        conn = FakeConnection(self.store)
        self.connections.append(conn)
        if self._init is not None:
            await self._init(conn)
        return conn

    async def release(self, conn: FakeConnection) -> None:
        self.released.append(conn)
        self._idle.append(conn)
        self._slots.release()

    async def close(self) -> None:
        self.closed = True

    def get_size(self) -> int:
        return len(self.connections)

    def get_idle_size(self) -> int:
        return len(self._idle)

    def get_min_size(self) -> int:
        return self._min_size

    def get_max_size(self) -> int:
        return self._max_size


class FakePoolFactory:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.created: list[FakePool] = []
        self.error: BaseException | None = None

    async def __call__(self, **kwargs: Any) -> FakePool:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        pool = FakePool(self.store, **kwargs)
        self.created.append(pool)
        return pool


def make_settings(tmp_path, **overrides: Any) -> DatabaseSettings:
    values: dict[str, Any] = {
        "data_path": str(tmp_path / "data"),
        "connection_limit": 5,
        "max_idle": 2,
        "acquire_timeout_s": 0.05,
    }
    values.update(overrides)
    return DatabaseSettings(**values)


@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    install_counter_handlers(s)
    return s


@pytest.fixture
def pool_factory(store: FakeStore) -> FakePoolFactory:
    return FakePoolFactory(store)


@pytest.fixture
def settings(tmp_path) -> DatabaseSettings:
    return make_settings(tmp_path)


@pytest.fixture
def pool(settings: DatabaseSettings, pool_factory: FakePoolFactory) -> ConnectionPool:
    return ConnectionPool(settings, create_pool=pool_factory)


@pytest.fixture
def db(pool: ConnectionPool) -> Database:
    return Database(pool)
