"""Configuration models"""

from pydantic import BaseModel, Field

from postsync.entities import SortOrder

DEFAULT_ALLOWED_IMAGE_TYPES = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
)


class SyncConfig(BaseModel):
    """Configuration options for the store and dispatcher"""

    error_clear_delay: float = Field(
        default=5.0, gt=0, description="Seconds before a recorded error clears itself"
    )
    page_size: int = Field(default=10, ge=1, description="Default page limit")
    sort_key: str = Field(default="created_at", description="Default primary sort column")
    sort_order: SortOrder = Field(default=SortOrder.DESC)


class BackendConfig(BaseModel):
    """Configuration options for the PostgreSQL gateway"""

    db_name: str = Field(default="default", description="Name of the registered pool")
    db_schema: str | None = Field(default=None, description="Database schema name")
    posts_table: str = "posts"
    images_table: str = "post_images"
    public_url_base: str = Field(
        default="http://localhost/storage/blog-images",
        description="Prefix prepended to stored image paths to build public URLs",
    )
    image_prefix: str = "featured-images"
    max_image_bytes: int = Field(default=5 * 1024 * 1024, ge=1)
    allowed_image_types: tuple[str, ...] = DEFAULT_ALLOWED_IMAGE_TYPES

    def qualified(self, table_name: str) -> str:
        return f"{self.db_schema}.{table_name}" if self.db_schema else table_name
