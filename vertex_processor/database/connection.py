from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import AsyncConnectionPool

from vertex_processor.config.settings import Settings
from vertex_processor.database.exceptions import DocumentStoreError
from vertex_processor.logging.logger import Log

_pool: AsyncConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    """Connection string for the document database; values are quoted as needed."""
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
        connect_timeout=settings.db_connect_timeout_seconds,
        application_name="vertex-processor",
    )


async def init_pool(settings: Settings) -> None:
    """Open the shared pool, waiting until its first connection is ready."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        return
    pool = AsyncConnectionPool(
        build_conninfo(settings),
        min_size=settings.db_pool_min_size,
        max_size=max(settings.db_pool_min_size, settings.db_pool_max_size),
        timeout=settings.db_pool_timeout_seconds,
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=settings.db_pool_timeout_seconds)
    except psycopg.Error as exc:
        await pool.close()
        raise DocumentStoreError(
            f"Cannot reach Postgres at {settings.db_host}:{settings.db_port}: {exc}"
        ) from exc
    _pool = pool
    Log.info("Postgres pool ready", host=settings.db_host, database=settings.db_database)


async def close_pool() -> None:
    """Close the shared pool if it is open."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncGenerator[psycopg.AsyncConnection[Any], None]:
    """Yield a pooled connection. Caller manages commit/rollback."""
    if _pool is None:
        raise DocumentStoreError("Postgres pool is not open; the postgres backend was not started")
    async with _pool.connection() as conn:
        yield conn
