"""PostgreSQL gateway package"""

from postsync.backend.db_context import DatabaseManager, transactional
from postsync.backend.postgres_gateway import PostgresGateway
from postsync.backend.query_builder import PostQuery
from postsync.backend.schema import create_schema, truncate_tables

__all__ = [
    "DatabaseManager",
    "transactional",
    "PostgresGateway",
    "PostQuery",
    "create_schema",
    "truncate_tables",
]
