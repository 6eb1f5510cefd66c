"""
Connection monitor for the maintenance database.

Prints server-side connection usage next to this process's own pool stats,
and estimates how many concurrent dashboard users the free connections can
carry.

Usage:
    python -m ops.pool_monitor [--interval 3] [--once]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime

from core.db import Database
from core.errors import DatabaseError
from core.location_guard import verify_data_location
from core.pool import ConnectionPool, PoolStats
from core.settings import DatabaseSettings

logger = logging.getLogger(__name__)

# Each dashboard page fires about four queries in parallel.
CONNECTIONS_PER_USER = 4
TARGET_USERS = 30


@dataclass(frozen=True)
class ServerStats:
    current_connections: int
    max_connections: int
    total_transactions: int
    uptime_s: int


@dataclass(frozen=True)
class UsageLevel:
    level: str
    marker: str


def usage_level(current: int, maximum: int) -> UsageLevel:
    percentage = (current / maximum * 100) if maximum > 0 else 100.0
    if percentage < 50:
        return UsageLevel("LOW", "[ ok ]")
    if percentage < 75:
        return UsageLevel("MEDIUM", "[ .. ]")
    if percentage < 90:
        return UsageLevel("HIGH", "[ !! ]")
    return UsageLevel("CRITICAL", "[!!!!]")


def format_uptime(seconds: int) -> str:
    days, rest = divmod(max(int(seconds), 0), 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    return f"{days}d {hours}h {minutes}m"


def transactions_per_second(total: int, uptime_s: int) -> float:
    if uptime_s <= 0:
        return 0.0
    return round(total / uptime_s, 2)


def supportable_users(stats: ServerStats) -> int:
    available = max(stats.max_connections - stats.current_connections, 0)
    return available // CONNECTIONS_PER_USER


async def read_server_stats(db: Database) -> ServerStats:
    row = await db.fetch_one(
        """
        SELECT
          (SELECT count(*) FROM pg_stat_activity WHERE datname = current_database())
            AS current_connections,
          current_setting('max_connections')::int AS max_connections,
          (SELECT coalesce(sum(xact_commit + xact_rollback), 0)
             FROM pg_stat_database) AS total_transactions,
          extract(epoch FROM now() - pg_postmaster_start_time())::bigint AS uptime_s
        """
    )
    if row is None:
        raise DatabaseError("Server statistics query returned no rows.")
    return ServerStats(
        current_connections=int(row["current_connections"]),
        max_connections=int(row["max_connections"]),
        total_transactions=int(row["total_transactions"]),
        uptime_s=int(row["uptime_s"]),
    )


def render_report(stats: ServerStats, pool: PoolStats, settings: DatabaseSettings, *, now: datetime) -> str:
    usage = usage_level(stats.current_connections, stats.max_connections)
    percentage = (
        stats.current_connections / stats.max_connections * 100 if stats.max_connections > 0 else 100.0
    )
    users = supportable_users(stats)

    lines = [
        "=" * 63,
        "CONNECTION MONITOR - MAINTENANCE DATABASE",
        "=" * 63,
        "",
        "SERVER CONNECTIONS:",
        f"   {usage.marker} Active: {stats.current_connections}/{stats.max_connections} ({percentage:.1f}%)",
        f"   Usage level: {usage.level}",
        "",
        "PERFORMANCE:",
        f"   Transactions per second: {transactions_per_second(stats.total_transactions, stats.uptime_s)}",
        f"   Uptime: {format_uptime(stats.uptime_s)}",
        f"   Total transactions: {stats.total_transactions:,}",
        "",
        f"CAPACITY FOR {TARGET_USERS} USERS:",
        f"   Connections needed: {TARGET_USERS * CONNECTIONS_PER_USER}",
        f"   Connections free: {max(stats.max_connections - stats.current_connections, 0)}",
        f"   Users supportable now: {users}",
    ]
    if users >= TARGET_USERS:
        lines.append(f"   Ready for {TARGET_USERS} concurrent users")
    elif users >= 20:
        lines.append("   Partially supported (20+ users)")
    else:
        lines.append("   LIMITED - needs tuning")

    lines += [
        "",
        "LOCAL POOL:",
        f"   Size: {pool.size} (min {pool.min_size}, max {pool.max_size})",
        f"   Idle: {pool.idle}  In use: {pool.in_use} ({pool.usage_percent:.1f}%)  Waiting: {pool.waiting}",
        f"   Acquire timeout: {settings.acquire_timeout_s}s  Queue limit: {settings.queue_limit or 'unbounded'}",
        "",
    ]
    if percentage > 85:
        lines.append("WARNING: server connection usage above 85%")
    lines += [
        "-" * 63,
        f"Last update: {now:%Y-%m-%d %H:%M:%S}",
        "Press Ctrl+C to exit",
    ]
    return "\n".join(lines)


async def monitor(db: Database, *, interval_s: float, once: bool = False) -> int:
    # A failing first read means the database is unreachable; later failures are transient.
    try:
        stats = await read_server_stats(db)
    except DatabaseError:
        logger.exception("monitor_initial_read_failed")
        return 1

    while True:
        print(render_report(stats, db.pool.stats(), db.pool.settings, now=datetime.now()), flush=True)
        if once:
            return 0
        await asyncio.sleep(interval_s)
        try:
            stats = await read_server_stats(db)
        except DatabaseError:
            logger.exception("monitor_read_failed")


async def _main(args: argparse.Namespace) -> int:
    settings = DatabaseSettings.from_env()
    verify_data_location(settings.data_path)
    pool = ConnectionPool(settings)
    try:
        return await monitor(Database(pool), interval_s=args.interval, once=args.once)
    finally:
        await pool.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Monitor database connection usage.")
    parser.add_argument("--interval", type=float, default=3.0, help="seconds between refreshes")
    parser.add_argument("--once", action="store_true", help="print one report and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    try:
        return asyncio.run(_main(args))
    except KeyboardInterrupt:
        logger.info("monitor_stopped")
        return 0


if __name__ == "__main__":
    sys.exit(main())
