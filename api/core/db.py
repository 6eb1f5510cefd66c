"""
Query executor (raw SQL) over the connection pool.

`Database` is built by the composition root around a `ConnectionPool` and
shared by every repository. Each call checks out a connection for just that
statement; `transaction()` keeps one connection for a multi-statement unit.

Entry points:
- query(sql, params): rows as dicts, via asyncpg's cached statements
- execute(sql, params): explicitly prepared statement, returns `ExecuteResult`
- query_direct(sql, params): like `query`, but bypasses the statement cache

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import abc
import asyncio
import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import asyncpg

from .errors import QueryError, ensure_server_environment
from .pool import ConnectionPool

logger = logging.getLogger(__name__)

# Everything a running statement can fail with once a connection is in hand.
STATEMENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    asyncio.TimeoutError,
    OSError,
)


@dataclass(frozen=True)
class ExecuteResult:
    status: str
    rows_affected: int
    inserted_id: Any = None
    rows: list[dict[str, Any]] = field(default_factory=list)


def normalize_params(params: Any) -> list[Any]:
    """
    Anything that is not a list/tuple (None, a dict, a bare scalar) means "no params".
    """
    if isinstance(params, (list, tuple)):
        return list(params)
    return []


def rows_affected(status: str) -> int:
    """
    Parse a command tag: "INSERT 0 3" -> 3, "UPDATE 2" -> 2, "CREATE TABLE" -> 0.
    """
    parts = (status or "").split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


def _record_to_dict(record: Any) -> dict[str, Any]:
    return dict(record)


class _Executor(abc.ABC):
    @abc.abstractmethod
    def _connection(self) -> AbstractAsyncContextManager[Any]:
        """Context manager yielding the connection a statement runs on."""

    async def _run(self, label: str, sql: str, params: Any, runner) -> Any:
        ensure_server_environment()
        args = normalize_params(params)
        logger.debug("%s sql=%s params=%s", label, sql, args)
        async with self._connection() as conn:
            try:
                return await runner(conn, args)
            except STATEMENT_ERRORS as exc:
                logger.error("%s_failed sql=%s params=%s error=%s", label, sql, args, exc)
                raise QueryError(f"Statement failed: {exc}", sql=sql, params=args) from exc

    async def query(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        async def run(conn, args):
            rows = await conn.fetch(sql, *args)
            return [_record_to_dict(r) for r in rows]

        return await self._run("query", sql, params, run)

    async def query_direct(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        # Connection.prepare() never consults the statement cache.
        async def run(conn, args):
            stmt = await conn.prepare(sql)
            rows = await stmt.fetch(*args)
            return [_record_to_dict(r) for r in rows]

        return await self._run("query_direct", sql, params, run)

    async def execute(self, sql: str, params: Any = None) -> ExecuteResult:
        """
        Run a write statement (INSERT/UPDATE/DELETE/DDL).

        `inserted_id` is filled when the statement ends with `RETURNING id`.
        """

        async def run(conn, args):
            stmt = await conn.prepare(sql)
            rows = [_record_to_dict(r) for r in await stmt.fetch(*args)]
            status = stmt.get_statusmsg()
            inserted_id = rows[0].get("id") if rows else None
            return ExecuteResult(
                status=status,
                rows_affected=rows_affected(status),
                inserted_id=inserted_id,
                rows=rows,
            )

        return await self._run("execute", sql, params, run)

    async def fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        rows = await self.query(sql, params)
        return rows[0] if rows else None

    async def fetch_value(self, sql: str, params: Any = None) -> Any:
        row = await self.fetch_one(sql, params)
        if row is None:
            return None
        return next(iter(row.values()), None)


class Transaction(_Executor):
    """
    Executor bound to one connection inside an open store transaction.
    """

    def __init__(self, connection: Any) -> None:
        self._conn = connection

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        yield self._conn


class Database(_Executor):
    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """
        One connection, one store transaction: commit on success, rollback on error.

        Only BEGIN/COMMIT failures are reported as `QueryError` here; errors
        raised inside the block propagate unchanged.
        """
        ensure_server_environment()
        async with self._pool.acquire() as conn:
            tx = conn.transaction()
            try:
                await tx.start()
            except STATEMENT_ERRORS as exc:
                raise _transaction_failed("BEGIN", exc) from exc

            try:
                yield Transaction(conn)
            except BaseException:
                try:
                    await tx.rollback()
                except STATEMENT_ERRORS:
                    logger.exception("transaction_rollback_failed")
                raise

            try:
                await tx.commit()
            except STATEMENT_ERRORS as exc:
                raise _transaction_failed("COMMIT", exc) from exc


def _transaction_failed(sql: str, exc: BaseException) -> QueryError:
    logger.error("transaction_failed sql=%s error=%s", sql, exc)
    return QueryError(f"Transaction failed: {exc}", sql=sql)
