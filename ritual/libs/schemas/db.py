"""Shared asyncpg pool and the three query helpers the stores use."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import asyncpg

from .settings import get_settings

logger = logging.getLogger(__name__)

_POOL: asyncpg.Pool | None = None
_POOL_LOCK = asyncio.Lock()


async def get_async_pool() -> asyncpg.Pool:
    global _POOL
    if _POOL is None:
        async with _POOL_LOCK:
            if _POOL is None:
                settings = get_settings()
                _POOL = await asyncpg.create_pool(
                    dsn=settings.database_url,
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    command_timeout=settings.db_command_timeout,
                    # pgbouncer in transaction mode cannot share prepared statements
                    statement_cache_size=0,
                )
                logger.info(
                    "Opened database pool",
                    extra={"min_size": settings.db_pool_min_size, "max_size": settings.db_pool_max_size},
                )
    return _POOL


async def close_async_pool() -> None:
    global _POOL
    if _POOL is not None:
        await _POOL.close()
        _POOL = None
        logger.info("Closed database pool")


async def fetch_one(query: str, *args: Any) -> asyncpg.Record | None:
    pool = await get_async_pool()
    async with pool.acquire() as connection:
        return await connection.fetchrow(query, *args)


async def fetch_all(query: str, *args: Any) -> list[asyncpg.Record]:
    pool = await get_async_pool()
    async with pool.acquire() as connection:
        return list(await connection.fetch(query, *args))


async def execute(query: str, *args: Any) -> str:
    """Run a write and return the asyncpg status tag, e.g. ``UPDATE 1``."""

    pool = await get_async_pool()
    async with pool.acquire() as connection:
        return await connection.execute(query, *args)


__all__ = ["close_async_pool", "execute", "fetch_all", "fetch_one", "get_async_pool"]
