import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from postsync.backend import DatabaseManager, create_schema, truncate_tables
from postsync.config import BackendConfig

TEST_DB = "test_db"


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    try:
        container = PostgresContainer("postgres:17")
        container.start()
    except Exception as exc:
        pytest.skip(f"PostgreSQL container unavailable: {exc}")
    yield container
    container.stop()


@pytest.fixture
def backend_config():
    return BackendConfig(db_name=TEST_DB, public_url_base="https://cdn.test/blog-images")


@pytest_asyncio.fixture
async def db_pool(postgres_container, backend_config):
    """Create a pool connected to the test container for each test."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    dsn = f"postgresql://{postgres_container.username}:{postgres_container.password}@{host}:{port}/{postgres_container.dbname}"

    # A new pool per test avoids sharing connections across event loops
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)
    await create_schema(pool, backend_config)
    await DatabaseManager.add_pool(TEST_DB, pool)

    yield pool

    await truncate_tables(pool, backend_config)
    await DatabaseManager.close_pool(TEST_DB)
