"""Async operation dispatcher"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from postsync import selectors
from postsync.entities import (
    ImageFile,
    ListView,
    PostDraft,
    PostStatus,
    PostUpdate,
    SortOrder,
)
from postsync.exceptions import ValidationError
from postsync.gateway import PostGateway
from postsync.logger import format_exception_short
from postsync.operations import (
    Fulfilled,
    ListRequest,
    OperationKind,
    PageRequest,
    Rejected,
    SearchRequest,
    UserListRequest,
)
from postsync.results import Err, Ok, OperationResult, Result
from postsync.store import PostStore


def _require(value: Any, message: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(message)


def _build[M: BaseModel](model: type[M], **fields: Any) -> M:
    """Construct a request model, reporting bad input as a ValidationError"""
    try:
        return model(**fields)
    except PydanticValidationError as exc:
        raise ValidationError(str(exc)) from exc


def _status_filter(status: PostStatus | str | None) -> PostStatus | None:
    """Map the "all" sentinel and None to no filter"""
    if status is None or status == "all":
        return None
    try:
        return PostStatus(status)
    except ValueError as exc:
        raise ValidationError(f"Unknown post status: {status!r}") from exc


class PostDispatcher:
    """Runs each gateway call as one tracked operation.

    Every public coroutine validates its input (raising ValidationError before
    the store is touched), begins the operation kind on the store, awaits the
    gateway exactly once and settles the outcome. Gateway failures never
    escape; they come back as OperationResult(success=False, error=...).
    """

    def __init__(self, gateway: PostGateway, store: PostStore):
        if gateway is None:
            raise ValueError("gateway is required")
        if store is None:
            raise ValueError("store is required")

        self.gateway = gateway
        self.store = store
        self.config = store.config
        # Last request dispatched per list view, reused by load_more/refresh
        self._last_requests: dict[ListView, PageRequest] = {}

    async def _dispatch(
        self,
        kind: OperationKind,
        call: Callable[[], Awaitable[Result[Any]]],
        request: Any = None,
        echo_request: bool = False,
    ) -> OperationResult:
        pending = self.store.begin(kind)

        try:
            result = await call()
        except asyncio.CancelledError:
            self.store.abandon(kind, pending.token)
            raise
        except Exception as exc:
            logger.error(format_exception_short(exc, f"{kind.value} #{pending.token} raised"))
            result = Err(str(exc) or type(exc).__name__)

        if not isinstance(result, Ok | Err):
            result = Err(f"Unexpected gateway result: {result!r}")

        if isinstance(result, Err):
            logger.warning("{} #{} rejected: {}", kind.value, pending.token, result.message)
            if not self.store.settle(Rejected(kind, pending.token, result.message)):
                return OperationResult.discarded()
            return OperationResult.failed(result.message)

        if not self.store.settle(Fulfilled(kind, pending.token, result.value, request)):
            return OperationResult.discarded()
        return OperationResult.ok(request if echo_request else result.value)

    def _remember(
        self, view: ListView, request: PageRequest, result: OperationResult
    ) -> OperationResult:
        # Only a request whose page is now in the view may seed load_more/refresh
        if result.success:
            self._last_requests[view] = request
        return result

    # Post CRUD
    async def create_post(
        self,
        title: str,
        content: str,
        featured_image: str | None = None,
        user_id: str | None = None,
        status: PostStatus | str = PostStatus.DRAFT,
    ) -> OperationResult:
        if not title or not content or not user_id:
            raise ValidationError("Post title, content, and user ID are required")
        draft = _build(
            PostDraft,
            title=title,
            content=content,
            user_id=user_id,
            featured_image=featured_image,
            status=_status_filter(status) or PostStatus.DRAFT,
        )
        return await self._dispatch(
            OperationKind.CREATE, lambda: self.gateway.create_post(draft), draft
        )

    async def get_post_by_id(self, post_id: str) -> OperationResult:
        _require(post_id, "Post ID is required")
        return await self._dispatch(
            OperationKind.GET_BY_ID, lambda: self.gateway.get_post_by_id(post_id), post_id
        )

    async def update_post(
        self, post_id: str, updates: PostUpdate | dict[str, Any]
    ) -> OperationResult:
        _require(post_id, "Post ID is required")
        if not isinstance(updates, PostUpdate):
            updates = _build(PostUpdate, **(updates or {}))
        return await self._dispatch(
            OperationKind.UPDATE,
            lambda: self.gateway.update_post(post_id, updates),
            post_id,
        )

    async def delete_post(self, post_id: str) -> OperationResult:
        _require(post_id, "Post ID is required")
        return await self._dispatch(
            OperationKind.DELETE,
            lambda: self.gateway.delete_post(post_id),
            post_id,
            echo_request=True,
        )

    # Paginated queries
    async def list_posts(
        self,
        page: int = 1,
        limit: int | None = None,
        sort_key: str | None = None,
        sort_order: SortOrder | None = None,
        status: PostStatus | str | None = None,
        append: bool = False,
    ) -> OperationResult:
        request = _build(
            ListRequest,
            page=page,
            limit=limit or self.config.page_size,
            sort_key=sort_key or self.config.sort_key,
            sort_order=sort_order or self.config.sort_order,
            status=_status_filter(status),
            append=append,
        )
        return await self._list(request)

    async def _list(self, request: ListRequest) -> OperationResult:
        result = await self._dispatch(
            OperationKind.LIST,
            lambda: self.gateway.list_posts(
                request.page,
                request.limit,
                request.sort_key,
                request.sort_order,
                request.status,
            ),
            request,
        )
        return self._remember(ListView.PRIMARY, request, result)

    async def list_posts_by_user(
        self,
        user_id: str,
        page: int = 1,
        limit: int | None = None,
        status: PostStatus | str | None = None,
        append: bool = False,
    ) -> OperationResult:
        _require(user_id, "User ID is required")
        request = _build(
            UserListRequest,
            user_id=user_id,
            page=page,
            limit=limit or self.config.page_size,
            status=_status_filter(status),
            append=append,
        )
        return await self._list_by_user(request)

    async def _list_by_user(self, request: UserListRequest) -> OperationResult:
        result = await self._dispatch(
            OperationKind.LIST_BY_USER,
            lambda: self.gateway.list_posts_by_user(
                request.user_id, request.page, request.limit, request.status
            ),
            request,
        )
        return self._remember(ListView.BY_USER, request, result)

    async def search_posts(
        self,
        query: str,
        page: int = 1,
        limit: int | None = None,
        status: PostStatus | str | None = None,
        append: bool = False,
    ) -> OperationResult:
        _require(query, "Search query is required")
        request = _build(
            SearchRequest,
            query=query,
            page=page,
            limit=limit or self.config.page_size,
            status=_status_filter(status),
            append=append,
        )
        return await self._search(request)

    async def _search(self, request: SearchRequest) -> OperationResult:
        result = await self._dispatch(
            OperationKind.SEARCH,
            lambda: self.gateway.search_posts(
                request.query, request.page, request.limit, request.status
            ),
            request,
        )
        return self._remember(ListView.SEARCH_RESULTS, request, result)

    async def search(self, query: str, **params: Any) -> OperationResult:
        """Record the query on the store, then run the search.

        A failed search puts back the query the results on screen belong to.
        """
        _require(query, "Search query is required")
        previous = self.store.state.search_query
        self.store.set_search_query(query)

        try:
            result = await self.search_posts(query, **params)
        except ValidationError:
            self.store.set_search_query(previous)
            raise
        if not result.success and not result.superseded:
            self.store.set_search_query(previous)
        return result

    async def load_more(self, view: ListView) -> OperationResult | None:
        """Fetch the next page of view and append it.

        Returns:
            None when the view has no further page or was never loaded
        """
        state = self.store.state
        last = self._last_requests.get(view)
        if last is None or not selectors.can_load_more(state, view):
            return None

        request = last.model_copy(
            update={"page": selectors.next_page(state, view), "append": True}
        )
        runners = {
            ListView.PRIMARY: self._list,
            ListView.BY_USER: self._list_by_user,
            ListView.SEARCH_RESULTS: self._search,
        }
        return await runners[view](request)

    async def refresh_posts(self) -> OperationResult:
        """Reload the first page of the primary feed with the last used filters"""
        last = self._last_requests.get(ListView.PRIMARY)
        if last is None:
            return await self.list_posts()
        return await self._list(last.model_copy(update={"page": 1, "append": False}))

    # Images
    async def upload_image(
        self, image: ImageFile, associated_id: str | None = None
    ) -> OperationResult:
        if image is None or not image.data:
            raise ValidationError("File is required")
        return await self._dispatch(
            OperationKind.UPLOAD_IMAGE,
            lambda: self.gateway.upload_image(image, associated_id),
            associated_id,
        )

    async def delete_image(self, path: str) -> OperationResult:
        _require(path, "Image path is required")
        return await self._dispatch(
            OperationKind.DELETE_IMAGE,
            lambda: self.gateway.delete_image(path),
            path,
            echo_request=True,
        )

    # Statistics
    async def get_stats(self, user_id: str | None = None) -> OperationResult:
        return await self._dispatch(
            OperationKind.GET_STATS, lambda: self.gateway.get_stats(user_id), user_id
        )

    async def can_user_edit_post(self, post_id: str, user_id: str) -> bool:
        """Ask the gateway whether user_id owns post_id. Not tracked by the store."""
        if not post_id or not user_id:
            raise ValidationError("Post ID and User ID are required")
        try:
            result = await self.gateway.can_user_edit_post(post_id, user_id)
        except Exception as exc:
            logger.error(format_exception_short(exc, "Checking post permissions"))
            return False
        if isinstance(result, Err):
            logger.warning("Permission check for post {} failed: {}", post_id, result.message)
            return False
        return bool(result.value)
