"""Table definitions used by the PostgreSQL gateway"""

import asyncpg
from loguru import logger

from postsync.config import BackendConfig


def schema_statements(config: BackendConfig | None = None) -> list[str]:
    """DDL creating the posts and images tables named by config"""
    config = config or BackendConfig()
    statements = []
    if config.db_schema:
        statements.append(f"CREATE SCHEMA IF NOT EXISTS {config.db_schema}")

    statements.append(
        f"""
        CREATE TABLE IF NOT EXISTS {config.qualified(config.posts_table)} (
            id UUID PRIMARY KEY,
            title VARCHAR(255) NOT NULL,
            content TEXT NOT NULL,
            featured_image TEXT,
            user_id TEXT NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'draft',
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL,
            published_at TIMESTAMPTZ
        )
        """
    )
    statements.append(
        f"""
        CREATE TABLE IF NOT EXISTS {config.qualified(config.images_table)} (
            path TEXT PRIMARY KEY,
            associated_id TEXT,
            content_type VARCHAR(100) NOT NULL,
            data BYTEA NOT NULL,
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )
    return statements


async def create_schema(pool: asyncpg.Pool, config: BackendConfig | None = None):
    """Create the gateway tables if they do not exist"""
    async with pool.acquire() as conn:
        for statement in schema_statements(config):
            await conn.execute(statement)
    logger.info("Post tables ready")


async def truncate_tables(pool: asyncpg.Pool, config: BackendConfig | None = None):
    """Remove every row from the gateway tables"""
    config = config or BackendConfig()
    async with pool.acquire() as conn:
        await conn.execute(f"TRUNCATE TABLE {config.qualified(config.posts_table)}")
        await conn.execute(f"TRUNCATE TABLE {config.qualified(config.images_table)}")
