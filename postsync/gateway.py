"""Contract of the remote data gateway consumed by the dispatcher"""

from typing import Protocol, runtime_checkable

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
from postsync.results import Result


@runtime_checkable
class PostGateway(Protocol):
    """Remote CRUD, query and file storage for posts.

    Implementations report failures as Err(message). The dispatcher also
    converts any exception they raise, so a failing gateway can never break
    the store.
    """

    async def create_post(self, draft: PostDraft) -> Result[Post]: ...

    async def list_posts(
        self,
        page: int,
        limit: int,
        sort_key: str,
        sort_order: SortOrder,
        status: PostStatus | None = None,
    ) -> Result[PostPage]: ...

    async def list_posts_by_user(
        self, user_id: str, page: int, limit: int, status: PostStatus | None = None
    ) -> Result[PostPage]: ...

    async def get_post_by_id(self, post_id: str) -> Result[Post]: ...

    async def update_post(self, post_id: str, updates: PostUpdate) -> Result[Post]: ...

    async def delete_post(self, post_id: str) -> Result[None]: ...

    async def search_posts(
        self, query: str, page: int, limit: int, status: PostStatus | None = None
    ) -> Result[PostPage]: ...

    async def upload_image(
        self, image: ImageFile, associated_id: str | None = None
    ) -> Result[UploadedImage]: ...

    async def delete_image(self, path: str) -> Result[None]: ...

    async def get_stats(self, user_id: str | None = None) -> Result[PostStats]: ...

    async def can_user_edit_post(self, post_id: str, user_id: str) -> Result[bool]: ...
