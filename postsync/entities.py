from datetime import datetime
from enum import Enum
from math import ceil
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# Sorting functionality
class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class ListView(str, Enum):
    """The paginated post containers held by the store"""

    PRIMARY = "primary"
    BY_USER = "by_user"
    SEARCH_RESULTS = "search_results"


class Post(BaseModel):
    """A blog post as returned by the gateway.

    Frozen: views share instances, so a change always produces a new object.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: str
    content: str
    featured_image: str | None = None
    user_id: str
    status: PostStatus = PostStatus.DRAFT
    created_at: datetime | None = None
    updated_at: datetime | None = None
    published_at: datetime | None = None

    @model_validator(mode="after")
    def _check_publish_date(self) -> "Post":
        if self.status == PostStatus.PUBLISHED and self.published_at is None:
            raise ValueError("published posts require published_at")
        if self.status == PostStatus.DRAFT and self.published_at is not None:
            raise ValueError("draft posts cannot have published_at")
        return self


class PostDraft(BaseModel):
    """Input model for creating a post"""

    title: str
    content: str
    user_id: str
    featured_image: str | None = None
    status: PostStatus = PostStatus.DRAFT


# Update model - defines which fields can be updated
class PostUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
    featured_image: str | None = None
    status: PostStatus | None = None
    published_at: datetime | None = None


class PostPage(BaseModel):
    """One page of a list query plus the total number of matching posts"""

    items: list[Post] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class PostStats(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    total_posts: int = 0
    published_posts: int = 0
    draft_posts: int = 0
    user_id: str | None = None


class ImageFile(BaseModel):
    """Raw image handed to the gateway for upload"""

    data: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1].lower() if "." in self.filename else ""


class UploadedImage(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    url: str
    path: str
    file_name: str | None = None


class Pagination(BaseModel):
    """Cursor of a paginated view.

    total_pages is derived from total and limit, so it stays correct when the
    store adjusts total after a create or delete.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    total: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit)

    def with_total(self, total: int) -> "Pagination":
        return self.model_copy(update={"total": max(0, total)})
