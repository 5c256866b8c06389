"""Client facade combining store, dispatcher and selectors"""

from collections.abc import Callable
from typing import Any

from postsync import selectors
from postsync.config import SyncConfig
from postsync.dispatcher import PostDispatcher
from postsync.entities import (
    ImageFile,
    ListView,
    Pagination,
    Post,
    PostStats,
    PostStatus,
    PostUpdate,
)
from postsync.gateway import PostGateway
from postsync.operations import OperationKind
from postsync.results import OperationResult
from postsync.state import SyncState, UploadState
from postsync.store import PostStore


class PostClient:
    """Everything a UI needs to work with posts.

    Operations are coroutines returning OperationResult envelopes, actions are
    plain methods that change the store, and reads always reflect the latest
    snapshot.

    Usage:
        client = PostClient(gateway)
        await client.get_all_posts(page=1)
        if client.can_load_more:
            await client.load_more_posts()
    """

    def __init__(
        self,
        gateway: PostGateway,
        config: SyncConfig | None = None,
        store: PostStore | None = None,
    ):
        self.store = store or PostStore(config)
        self.dispatcher = PostDispatcher(gateway, self.store)

    # Operations
    async def create_post(
        self,
        title: str,
        content: str,
        featured_image: str | None = None,
        user_id: str | None = None,
        status: PostStatus | str = PostStatus.DRAFT,
    ) -> OperationResult:
        return await self.dispatcher.create_post(title, content, featured_image, user_id, status)

    async def get_all_posts(self, **params: Any) -> OperationResult:
        return await self.dispatcher.list_posts(**params)

    async def get_posts_by_user(self, user_id: str, **params: Any) -> OperationResult:
        return await self.dispatcher.list_posts_by_user(user_id, **params)

    async def get_post_by_id(self, post_id: str) -> OperationResult:
        return await self.dispatcher.get_post_by_id(post_id)

    async def update_post(
        self, post_id: str, updates: PostUpdate | dict[str, Any]
    ) -> OperationResult:
        return await self.dispatcher.update_post(post_id, updates)

    async def delete_post(self, post_id: str) -> OperationResult:
        return await self.dispatcher.delete_post(post_id)

    async def search_posts(self, query: str, **params: Any) -> OperationResult:
        return await self.dispatcher.search_posts(query, **params)

    async def search(self, query: str, **params: Any) -> OperationResult:
        return await self.dispatcher.search(query, **params)

    async def upload_image(
        self, image: ImageFile, associated_id: str | None = None
    ) -> OperationResult:
        return await self.dispatcher.upload_image(image, associated_id)

    async def delete_image(self, path: str) -> OperationResult:
        return await self.dispatcher.delete_image(path)

    async def get_stats(self, user_id: str | None = None) -> OperationResult:
        return await self.dispatcher.get_stats(user_id)

    async def load_more_posts(self) -> OperationResult | None:
        return await self.dispatcher.load_more(ListView.PRIMARY)

    async def load_more_user_posts(self) -> OperationResult | None:
        return await self.dispatcher.load_more(ListView.BY_USER)

    async def load_more_search_results(self) -> OperationResult | None:
        return await self.dispatcher.load_more(ListView.SEARCH_RESULTS)

    async def refresh_posts(self) -> OperationResult:
        return await self.dispatcher.refresh_posts()

    async def can_user_edit_post(self, post_id: str, user_id: str) -> bool:
        return await self.dispatcher.can_user_edit_post(post_id, user_id)

    # Actions
    def clear_error(self, kind: OperationKind | None = None) -> None:
        self.store.clear_error(kind)

    def clear_search_results(self) -> None:
        self.store.clear_search()

    def clear_user_posts(self) -> None:
        self.store.clear_user_view()

    def clear_current_post(self) -> None:
        self.store.clear_current()

    def reset_upload_state(self) -> None:
        self.store.reset_upload_state()

    def update_upload_progress(self, progress: int) -> None:
        self.store.set_upload_progress(progress)

    def set_search_query(self, query: str) -> None:
        self.store.set_search_query(query)

    def set_selected_user_id(self, user_id: str | None) -> None:
        self.store.set_selected_user_id(user_id)

    def reset(self) -> None:
        self.store.reset()

    def subscribe(self, listener: Callable[[SyncState], None]) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # Reads
    @property
    def state(self) -> SyncState:
        return self.store.state

    @property
    def posts(self) -> tuple[Post, ...]:
        return self.state.primary

    @property
    def user_posts(self) -> tuple[Post, ...]:
        return self.state.by_user

    @property
    def search_results(self) -> tuple[Post, ...]:
        return self.state.search_results

    @property
    def current_post(self) -> Post | None:
        return self.state.current

    @property
    def pagination(self) -> Pagination:
        return self.state.primary_page

    @property
    def user_posts_pagination(self) -> Pagination:
        return self.state.by_user_page

    @property
    def search_pagination(self) -> Pagination:
        return self.state.search_page

    @property
    def loading(self) -> dict[OperationKind, bool]:
        return dict(self.state.loading)

    @property
    def errors(self) -> dict[OperationKind, str | None]:
        return dict(self.state.errors)

    @property
    def upload(self) -> UploadState:
        return self.state.upload

    @property
    def stats(self) -> PostStats:
        return self.state.stats

    @property
    def search_query(self) -> str:
        return self.state.search_query

    @property
    def selected_user_id(self) -> str | None:
        return self.state.selected_user_id

    @property
    def is_loading(self) -> bool:
        return selectors.is_any_operation_loading(self.state)

    @property
    def has_error(self) -> bool:
        return selectors.has_any_operation_error(self.state)

    @property
    def can_load_more(self) -> bool:
        return selectors.can_load_more(self.state, ListView.PRIMARY)

    @property
    def can_load_more_user_posts(self) -> bool:
        return selectors.can_load_more(self.state, ListView.BY_USER)

    @property
    def can_load_more_search_results(self) -> bool:
        return selectors.can_load_more(self.state, ListView.SEARCH_RESULTS)

    def find_post(self, post_id: str) -> Post | None:
        return selectors.find_by_id(self.state, post_id)

    def is_loading_operation(self, kind: OperationKind) -> bool:
        return selectors.is_loading(self.state, kind)

    def has_operation_error(self, kind: OperationKind) -> bool:
        return selectors.has_error(self.state, kind)

    def get_operation_error(self, kind: OperationKind) -> str | None:
        return selectors.get_error(self.state, kind)

    def next_page(self, view: ListView = ListView.PRIMARY) -> int:
        return selectors.next_page(self.state, view)
