from __future__ import annotations

import asyncio

import pytest

from conftest import make_settings
from core.errors import DatabaseConnectionError, PoolExhaustedError
from core.pool import CONNECTION_CREATED, CONNECTION_ERROR, ConnectionPool


async def test_pool_is_created_lazily_and_once(pool, pool_factory):
    assert pool_factory.created == []
    assert not pool.is_open

    async def use():
        async with pool.acquire():
            await asyncio.sleep(0)

    await asyncio.gather(*(use() for _ in range(8)))

    assert len(pool_factory.created) == 1
    assert pool.is_open


async def test_pool_receives_configured_limits(tmp_path, pool_factory):
    settings = make_settings(
        tmp_path,
        connection_limit=7,
        max_idle=3,
        idle_timeout_s=12.0,
        statement_timeout_s=4.0,
    )
    pool = ConnectionPool(settings, create_pool=pool_factory)

    await pool.open()

    created = pool_factory.created[0]
    assert created.get_max_size() == 7
    assert created.get_min_size() == 3
    assert created.kwargs["max_inactive_connection_lifetime"] == 12.0
    assert created.kwargs["command_timeout"] == 4.0
    assert created.kwargs["dsn"].startswith("postgresql://")


async def test_acquire_times_out_with_pool_exhausted(tmp_path, pool_factory):
    pool = ConnectionPool(
        make_settings(tmp_path, connection_limit=1, acquire_timeout_s=0.05),
        create_pool=pool_factory,
    )

    async with pool.acquire():
        with pytest.raises(PoolExhaustedError):
            async with pool.acquire():
                pass

    # The held connection was released, so the pool is usable again.
    async with pool.acquire():
        pass


async def test_reject_immediately_when_waiting_disabled(tmp_path, pool_factory):
    pool = ConnectionPool(
        make_settings(tmp_path, connection_limit=1, wait_for_connections=False, acquire_timeout_s=5.0),
        create_pool=pool_factory,
    )

    async with pool.acquire():
        with pytest.raises(PoolExhaustedError, match="waiting is disabled"):
            async with pool.acquire():
                pass


async def test_queue_limit_rejects_extra_waiters(tmp_path, pool_factory):
    pool = ConnectionPool(
        make_settings(tmp_path, connection_limit=1, queue_limit=1, acquire_timeout_s=5.0),
        create_pool=pool_factory,
    )
    release = asyncio.Event()

    async def holder():
        async with pool.acquire():
            await release.wait()

    async def waiter():
        async with pool.acquire():
            pass

    holding = asyncio.create_task(holder())
    await asyncio.sleep(0.01)
    waiting = asyncio.create_task(waiter())
    await asyncio.sleep(0.01)

    assert pool.stats().waiting == 1
    with pytest.raises(PoolExhaustedError, match="queued"):
        async with pool.acquire():
            pass

    release.set()
    await asyncio.gather(holding, waiting)
    assert pool.stats().in_use == 0


async def test_connection_released_when_body_raises(pool, pool_factory):
    with pytest.raises(RuntimeError):
        async with pool.acquire():
            raise RuntimeError("boom")

    created = pool_factory.created[0]
    assert len(created.released) == 1
    assert pool.stats().in_use == 0


async def test_unreachable_store_raises_connection_error(pool, pool_factory):
    pool_factory.error = ConnectionRefusedError("connection refused")
    seen = []
    pool.on(CONNECTION_ERROR, seen.append)

    with pytest.raises(DatabaseConnectionError) as excinfo:
        async with pool.acquire():
            pass

    assert isinstance(excinfo.value, ConnectionError)
    assert isinstance(seen[0], ConnectionRefusedError)


async def test_connection_created_event(pool):
    created = []
    pool.on(CONNECTION_CREATED, created.append)

    async with pool.acquire() as conn:
        pass

    assert created == [conn]


async def test_failing_listener_does_not_affect_acquire(pool):
    def broken(_):
        raise ValueError("listener bug")

    pool.on(CONNECTION_CREATED, broken)

    async with pool.acquire() as conn:
        assert conn is not None


def test_unknown_event_rejected(pool):
    with pytest.raises(ValueError):
        pool.on("connection_vanished", lambda _: None)


async def test_stats_before_and_after_open(pool):
    before = pool.stats()
    assert before.size == 0
    assert before.max_size == 5

    async with pool.acquire():
        during = pool.stats()
        assert during.in_use == 1
        assert during.usage_percent == 20.0

    after = pool.stats()
    assert after.in_use == 0
    assert after.idle == 1


async def test_closed_pool_refuses_new_work(pool, pool_factory):
    async with pool.acquire():
        pass

    await pool.close()

    assert pool_factory.created[0].closed
    with pytest.raises(DatabaseConnectionError, match="closed"):
        async with pool.acquire():
            pass
