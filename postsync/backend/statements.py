"""Post statements executed on the connection of the active transaction"""

from typing import Any

import asyncpg
from loguru import logger

from postsync.backend.db_context import DatabaseManager
from postsync.backend.query_builder import PostQuery
from postsync.entities import Post


def row_to_post(row: asyncpg.Record) -> Post:
    """Map a posts row to a Post; ids leave the database as strings"""
    data = dict(row)
    data["id"] = str(data["id"])
    return Post(**data)


def affected_rows(status: str) -> int:
    """Row count from a command status such as "DELETE 3" or "INSERT 0 1" """
    count = status.rsplit(" ", 1)[-1]
    return int(count) if count.isdigit() else 0


class PostStatements:
    """Runs post queries and maps the results to entities.

    Every method needs an enclosing DatabaseManager.transaction(); statements
    are logged at debug level before they run.

    Usage:
        async with DatabaseManager.transaction("default"):
            posts = await statements.posts(PostQuery("posts").paginate(1, 10))
    """

    @staticmethod
    def connection() -> asyncpg.Connection:
        conn = DatabaseManager.get_current_connection()
        if conn is None:
            raise ValueError(
                "No active transaction found. Gateway queries must run within a transaction context."
            )
        return conn

    async def _run(self, method: str, sql: str, params: list[Any]) -> Any:
        conn = self.connection()
        logger.debug("SQL {} {}", sql, params)
        return await getattr(conn, method)(sql, *params)

    # Typed reads built from PostQuery
    async def posts(self, query: PostQuery) -> list[Post]:
        rows = await self._run("fetch", *query.build())
        return [row_to_post(row) for row in rows]

    async def first(self, query: PostQuery) -> Post | None:
        row = await self._run("fetchrow", *query.limit(1).build())
        return row_to_post(row) if row is not None else None

    async def count(self, query: PostQuery) -> int:
        return await self._run("fetchval", *query.build_count()) or 0

    async def aggregate(self, query: PostQuery) -> dict[str, Any]:
        """Single row of a query whose select list is made of aggregates"""
        row = await self._run("fetchrow", *query.build())
        return dict(row) if row is not None else {}

    # Writes
    async def returning_post(self, sql: str, params: list[Any]) -> Post:
        """Run an INSERT/UPDATE ... RETURNING * and map the row"""
        row = await self._run("fetchrow", sql, params)
        if row is None:
            raise ValueError("Statement returned no post row")
        return row_to_post(row)

    async def execute(self, sql: str, params: list[Any]) -> int:
        """Run a command and return the number of affected rows"""
        return affected_rows(await self._run("execute", sql, params))
