"""PostgreSQL implementation of the remote data gateway"""

import secrets
import time
from datetime import UTC, datetime
from functools import wraps
from uuid import UUID, uuid4

import asyncpg
from loguru import logger

from postsync.backend.db_context import DatabaseManager
from postsync.backend.query_builder import PostQuery
from postsync.backend.statements import PostStatements
from postsync.config import BackendConfig
from postsync.entities import (
    ImageFile,
    Post,
    PostDraft,
    PostPage,
    PostStats,
    PostStatus,
    PostUpdate,
    SortOrder,
    UploadedImage,
)
from postsync.exceptions import NotFoundError, PostSyncError, ValidationError
from postsync.logger import format_exception_short
from postsync.results import Err, Ok

SORTABLE_COLUMNS = frozenset({"created_at", "updated_at", "published_at", "title", "status"})
SEARCH_COLUMNS = ["title", "content"]

# Errors converted into Err results at the gateway boundary
GATEWAY_FAILURES = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    PostSyncError,
    ValueError,
    OSError,
)


def gateway_operation(context: str):
    """Run the method in a transaction and wrap its return value in a Result.

    Failures are logged and returned as Err(message) instead of raised.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(self: "PostgresGateway", *args, **kwargs):
            try:
                async with DatabaseManager.transaction(self.config.db_name):
                    return Ok(await func(self, *args, **kwargs))
            except GATEWAY_FAILURES as exc:
                logger.error(format_exception_short(exc, context))
                return Err(str(exc) or type(exc).__name__)

        return wrapper

    return decorator


def _parse_id(post_id: str) -> UUID:
    try:
        return UUID(str(post_id))
    except ValueError as exc:
        raise NotFoundError("Post not found") from exc


def _status_value(status: PostStatus | str | None) -> str | None:
    if status is None or status == "all":
        return None
    return PostStatus(status).value


def _sort_value(sort_order: SortOrder | str) -> SortOrder:
    if isinstance(sort_order, SortOrder):
        return sort_order
    return SortOrder(str(sort_order).upper())


class PostgresGateway:
    """Gateway storing posts and featured images in PostgreSQL.

    Requires a pool registered with DatabaseManager under config.db_name.

    Usage:
        pool = await asyncpg.create_pool(dsn)
        await DatabaseManager.add_pool("default", pool)
        client = PostClient(PostgresGateway())
    """

    def __init__(self, config: BackendConfig | None = None):
        self.config = config or BackendConfig()
        self.posts_table = self.config.qualified(self.config.posts_table)
        self.images_table = self.config.qualified(self.config.images_table)
        self.statements = PostStatements()

    def _posts_query(self) -> PostQuery:
        return PostQuery(self.posts_table)

    async def _fetch_page(self, query: PostQuery, page: int, limit: int) -> PostPage:
        total = await self.statements.count(query)
        items = await self.statements.posts(query.paginate(page, limit))
        return PostPage(items=items, total=total)

    async def _find(self, post_id: str) -> Post | None:
        return await self.statements.first(self._posts_query().where("id", _parse_id(post_id)))

    # Posts
    @gateway_operation("Error creating post")
    async def create_post(self, draft: PostDraft) -> Post:
        if not draft.title or not draft.content or not draft.user_id:
            raise ValidationError("Post title, content, and user ID are required")

        now = datetime.now(UTC)
        fields = {
            "id": uuid4(),
            "title": draft.title,
            "content": draft.content,
            "featured_image": draft.featured_image or None,
            "user_id": draft.user_id,
            "status": draft.status.value,
            "created_at": now,
            "updated_at": now,
            "published_at": now if draft.status == PostStatus.PUBLISHED else None,
        }
        columns = ", ".join(fields.keys())
        placeholders = ", ".join(f"${i + 1}" for i in range(len(fields)))

        post = await self.statements.returning_post(
            f"INSERT INTO {self.posts_table} ({columns}) VALUES ({placeholders}) RETURNING *",
            list(fields.values()),
        )
        logger.info("Created post {}", post.id)
        return post

    @gateway_operation("Error fetching posts")
    async def list_posts(
        self,
        page: int,
        limit: int,
        sort_key: str,
        sort_order: SortOrder,
        status: PostStatus | None = None,
    ) -> PostPage:
        if sort_key not in SORTABLE_COLUMNS:
            raise ValidationError(f"Cannot sort posts by {sort_key!r}")

        query = self._posts_query()
        status_value = _status_value(status)
        if status_value:
            query = query.where("status", status_value)

        if _sort_value(sort_order) == SortOrder.ASC:
            query = query.order_by_asc(sort_key)
        else:
            query = query.order_by_desc(sort_key)
        return await self._fetch_page(query.order_by_asc("id"), page, limit)

    @gateway_operation("Error fetching user posts")
    async def list_posts_by_user(
        self, user_id: str, page: int, limit: int, status: PostStatus | None = None
    ) -> PostPage:
        if not user_id:
            raise ValidationError("User ID is required")

        query = self._posts_query().where("user_id", user_id)
        status_value = _status_value(status)
        if status_value:
            query = query.where("status", status_value)
        query = query.order_by_desc("created_at").order_by_asc("id")
        return await self._fetch_page(query, page, limit)

    @gateway_operation("Error fetching post")
    async def get_post_by_id(self, post_id: str) -> Post:
        post = await self._find(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    @gateway_operation("Error updating post")
    async def update_post(self, post_id: str, updates: PostUpdate) -> Post:
        existing = await self._find(post_id)
        if existing is None:
            raise NotFoundError("Post not found")

        data = updates.model_dump(exclude_unset=True)
        now = datetime.now(UTC)
        data["updated_at"] = now

        status = PostStatus(data.get("status") or existing.status)
        if status == PostStatus.PUBLISHED:
            # Keep the original publish date unless a new one is supplied
            data["published_at"] = data.get("published_at") or existing.published_at or now
        else:
            data["published_at"] = None
        if "status" in data:
            data["status"] = status.value

        set_clause = ", ".join(f"{key} = ${i + 2}" for i, key in enumerate(data.keys()))
        post = await self.statements.returning_post(
            f"UPDATE {self.posts_table} SET {set_clause} WHERE id = $1 RETURNING *",
            [UUID(existing.id), *data.values()],
        )
        logger.info("Updated post {}", post_id)
        return post

    @gateway_operation("Error deleting post")
    async def delete_post(self, post_id: str) -> None:
        deleted = await self.statements.execute(
            f"DELETE FROM {self.posts_table} WHERE id = $1", [_parse_id(post_id)]
        )
        if deleted == 0:
            raise NotFoundError("Post not found")
        logger.info("Deleted post {}", post_id)

    @gateway_operation("Error searching posts")
    async def search_posts(
        self, query: str, page: int, limit: int, status: PostStatus | None = None
    ) -> PostPage:
        if not query:
            raise ValidationError("Search query is required")

        search = self._posts_query().where_any_ilike(SEARCH_COLUMNS, query)
        status_value = _status_value(status)
        if status_value:
            search = search.where("status", status_value)
        search = search.order_by_desc("created_at").order_by_asc("id")
        return await self._fetch_page(search, page, limit)

    # Images
    @gateway_operation("Error uploading image")
    async def upload_image(
        self, image: ImageFile, associated_id: str | None = None
    ) -> UploadedImage:
        if not image.data:
            raise ValidationError("File is required")
        if image.size > self.config.max_image_bytes:
            limit_mb = self.config.max_image_bytes // (1024 * 1024)
            raise ValidationError(f"File size exceeds {limit_mb}MB limit")
        if image.content_type not in self.config.allowed_image_types:
            raise ValidationError(
                "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed"
            )

        extension = image.extension or image.content_type.split("/")[-1]
        file_name = (
            f"{associated_id or int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"
        )
        path = f"{self.config.image_prefix}/{file_name}"

        await self.statements.execute(
            f"INSERT INTO {self.images_table} (path, associated_id, content_type, data, created_at) "
            "VALUES ($1, $2, $3, $4, $5)",
            [path, associated_id, image.content_type, image.data, datetime.now(UTC)],
        )
        logger.info("Uploaded image {} ({} bytes)", path, image.size)
        return UploadedImage(
            url=f"{self.config.public_url_base.rstrip('/')}/{path}",
            path=path,
            file_name=file_name,
        )

    @gateway_operation("Error deleting image")
    async def delete_image(self, path: str) -> None:
        if not path:
            raise ValidationError("Image path is required")
        deleted = await self.statements.execute(
            f"DELETE FROM {self.images_table} WHERE path = $1", [path]
        )
        if deleted == 0:
            raise NotFoundError("Image not found")
        logger.info("Deleted image {}", path)

    # Statistics and permissions
    @gateway_operation("Error fetching post stats")
    async def get_stats(self, user_id: str | None = None) -> PostStats:
        query = self._posts_query().select(
            "COUNT(*) AS total_posts",
            "COUNT(*) FILTER (WHERE status = 'published') AS published_posts",
            "COUNT(*) FILTER (WHERE status = 'draft') AS draft_posts",
        )
        if user_id:
            query = query.where("user_id", user_id)

        counts = await self.statements.aggregate(query)
        return PostStats(
            total_posts=counts.get("total_posts") or 0,
            published_posts=counts.get("published_posts") or 0,
            draft_posts=counts.get("draft_posts") or 0,
            user_id=user_id,
        )

    @gateway_operation("Error checking post permissions")
    async def can_user_edit_post(self, post_id: str, user_id: str) -> bool:
        post = await self._find(post_id)
        return post is not None and post.user_id == user_id
