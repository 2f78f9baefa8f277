import os
import uuid
from collections.abc import AsyncGenerator

import psycopg
import pytest

from vertex_processor.config.settings import Settings
from vertex_processor.database.connection import close_pool, get_connection, init_pool
from vertex_processor.database.postgres_store import PostgresDocumentStore


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "vertex_processor_test")
    return Settings()


async def _check_reachable(settings: Settings) -> None:
    conn = await psycopg.AsyncConnection.connect(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
        connect_timeout=3,
    )
    await conn.close()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture
async def integration_pool(test_settings: Settings) -> AsyncGenerator[None, None]:
    try:
        await _check_reachable(test_settings)
    except psycopg.Error as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run integration tests")
    await init_pool(test_settings)
    try:
        yield
    finally:
        await close_pool()


@pytest.fixture
async def postgres_store(integration_pool: None) -> PostgresDocumentStore:
    store = PostgresDocumentStore()
    await store.ensure_schema()
    return store


@pytest.fixture
async def collection(integration_pool: None) -> AsyncGenerator[str, None]:
    name = f"it_{uuid.uuid4().hex[:12]}"
    yield name
    async with get_connection() as conn:
        await conn.execute("DELETE FROM documents WHERE collection = %s", (name,))
        await conn.commit()
