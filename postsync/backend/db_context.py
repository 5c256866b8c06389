"""Connection pools and transaction context for the PostgreSQL gateway"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from functools import wraps

import asyncpg
from loguru import logger

# Connection bound to the running transaction (only one per context)
_current_connection: ContextVar[asyncpg.Connection | None] = ContextVar(
    "current_connection", default=None
)
_db_pools: dict[str, asyncpg.Pool] = {}


class DatabaseManager:
    """Registry of named asyncpg pools plus the context-local connection"""

    @classmethod
    async def add_pool(cls, name: str, pool: asyncpg.Pool):
        """Register a pool under a name"""
        _db_pools[name] = pool
        logger.debug("Registered database pool '{}'", name)

    @classmethod
    async def get_pool(cls, name: str = "default") -> asyncpg.Pool:
        """Get a registered pool by name"""
        if name not in _db_pools:
            raise ValueError(f"Database pool '{name}' not found")
        return _db_pools[name]

    @classmethod
    async def close_pool(cls, name: str = "default"):
        """Close and forget a pool. Unknown names are ignored."""
        pool = _db_pools.pop(name, None)
        if pool is not None:
            await pool.close()
            logger.debug("Closed database pool '{}'", name)

    @classmethod
    def get_current_connection(cls) -> asyncpg.Connection | None:
        """Get the connection of the active transaction, if any"""
        return _current_connection.get()

    @classmethod
    @asynccontextmanager
    async def transaction(cls, db_name: str = "default") -> AsyncIterator[asyncpg.Connection]:
        """Run the block inside a transaction.

        Inside an existing transaction the same connection is reused with a
        nested (savepoint) transaction. Otherwise a connection is acquired from
        the named pool and always released when the block exits.
        """
        current_conn = _current_connection.get()

        if current_conn:
            async with current_conn.transaction():
                yield current_conn
        else:
            pool = await cls.get_pool(db_name)
            async with pool.acquire() as conn, conn.transaction():
                token = _current_connection.set(conn)
                try:
                    yield conn
                finally:
                    _current_connection.reset(token)


def transactional(db_name: str = "default"):
    """Decorator to run a coroutine within a database transaction.

    Example:
        @transactional("blog")
        async def seed():
            await gateway.create_post(draft)
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            async with DatabaseManager.transaction(db_name):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
