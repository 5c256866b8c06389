"""
Database setup utilities for examples
"""

import asyncpg
from loguru import logger

from postsync.backend import DatabaseManager, create_schema, truncate_tables
from postsync.config import BackendConfig


async def setup_postgres_connection(
    host: str = "localhost",
    port: int = 5432,
    database: str = "postgres",
    user: str = "postgres",
    password: str = "postgres",
    pool_name: str = "default",
) -> asyncpg.Pool:
    """
    Set up a connection pool to a local PostgreSQL instance and register it.

    Make sure you have PostgreSQL running locally with these credentials,
    or modify the parameters to match your setup.
    """
    try:
        pool = await asyncpg.create_pool(
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
            min_size=1,
            max_size=10,
        )
    except (OSError, asyncpg.PostgresError) as exc:
        logger.error("Failed to connect to PostgreSQL at {}:{}: {}", host, port, exc)
        logger.error("Make sure database '{}' exists with user '{}'", database, user)
        raise

    await DatabaseManager.add_pool(pool_name, pool)
    logger.success("Connected to PostgreSQL at {}:{}/{} as {}", host, port, database, user)
    return pool


async def setup_example_schema(config: BackendConfig, clean: bool = True):
    """Create the post tables, optionally emptying them for a clean run."""
    pool = await DatabaseManager.get_pool(config.db_name)
    await create_schema(pool, config)
    if clean:
        await truncate_tables(pool, config)
        logger.info("Cleaned up existing posts and images")


async def close_connections(pool_name: str = "default"):
    """Close the example pool (call this at the end of examples)."""
    await DatabaseManager.close_pool(pool_name)
