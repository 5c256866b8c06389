"""Entity synchronization store"""

import asyncio
from collections.abc import Callable

from loguru import logger

from postsync.config import SyncConfig
from postsync.entities import ListView, Pagination, Post, PostPage, UploadedImage
from postsync.exceptions import SupersededOperation
from postsync.operations import (
    Fulfilled,
    OperationKind,
    PageRequest,
    Pending,
    Rejected,
)
from postsync.state import VIEW_FIELDS, SyncState, UploadState, initial_state

Listener = Callable[[SyncState], None]
Reducer = Callable[[SyncState, Fulfilled], SyncState]


def _replace_post(items: tuple[Post, ...], post: Post) -> tuple[Post, ...]:
    """Swap the post with the same id in place, keeping its index"""
    return tuple(post if item.id == post.id else item for item in items)


def _without_post(items: tuple[Post, ...], post_id: str) -> tuple[Post, ...]:
    return tuple(item for item in items if item.id != post_id)


class PostStore:
    """Single source of truth for post views, cursors and operation status.

    Every transition builds a complete new SyncState and swaps it in with one
    assignment, so listeners and readers never observe a half-applied step.

    Usage:
        store = PostStore()
        pending = store.begin(OperationKind.SEARCH)
        ...
        store.settle(Fulfilled(OperationKind.SEARCH, pending.token, page, request))
    """

    def __init__(self, config: SyncConfig | None = None):
        self.config = config or SyncConfig()
        self._state = initial_state(self.config)
        self._tokens: dict[OperationKind, int] = {kind: 0 for kind in OperationKind}
        self._listeners: list[Listener] = []
        self._error_timers: dict[OperationKind, asyncio.TimerHandle] = {}
        self._reducers: dict[OperationKind, Reducer] = {
            OperationKind.CREATE: self._reduce_create,
            OperationKind.LIST: self._reduce_list,
            OperationKind.LIST_BY_USER: self._reduce_list_by_user,
            OperationKind.GET_BY_ID: self._reduce_get_by_id,
            OperationKind.UPDATE: self._reduce_update,
            OperationKind.DELETE: self._reduce_delete,
            OperationKind.SEARCH: self._reduce_search,
            OperationKind.UPLOAD_IMAGE: self._reduce_upload_image,
            OperationKind.DELETE_IMAGE: self._reduce_delete_image,
            OperationKind.GET_STATS: self._reduce_get_stats,
        }

    @property
    def state(self) -> SyncState:
        """The latest snapshot"""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback run after every state change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: SyncState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:
                logger.opt(exception=exc).error("State listener {} failed", listener)

    # Operation lifecycle
    def begin(self, kind: OperationKind) -> Pending:
        """Mark kind as in flight and hand out a fresh supersession token"""
        self._tokens[kind] += 1
        token = self._tokens[kind]
        self._cancel_error_timer(kind)

        update: dict = {
            "loading": {**self._state.loading, kind: True},
            "errors": {**self._state.errors, kind: None},
        }
        if kind == OperationKind.UPLOAD_IMAGE:
            update["upload"] = self._state.upload.model_copy(update={"progress": 0})

        self._commit(self._state.model_copy(update=update))
        logger.debug("{} #{} pending", kind.value, token)
        return Pending(kind, token)

    def is_current(self, kind: OperationKind, token: int) -> bool:
        return self._tokens[kind] == token

    def settle(self, outcome: Fulfilled | Rejected) -> bool:
        """Apply a resolved outcome.

        Returns:
            False when a newer dispatch of the same kind superseded the outcome
            and nothing was applied
        """
        kind = outcome.kind
        if not self.is_current(kind, outcome.token):
            skipped = SupersededOperation(kind.value, outcome.token, self._tokens[kind])
            logger.debug("Discarding outcome: {}", skipped)
            return False

        if isinstance(outcome, Rejected):
            self._record_failure(kind, outcome.message)
            return True

        try:
            state = self._reducers[kind](self._state, outcome)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.opt(exception=exc).error("Malformed {} payload", kind.value)
            self._record_failure(kind, f"Malformed {kind.value} response: {exc}")
            return True

        self._commit(self._with_loading(state, kind, False))
        logger.debug("{} #{} reconciled", kind.value, outcome.token)
        return True

    def abandon(self, kind: OperationKind, token: int) -> None:
        """Drop the in-flight flag of a cancelled dispatch without recording an error"""
        if not self.is_current(kind, token):
            return
        self._commit(self._with_loading(self._state, kind, False))
        logger.debug("{} #{} abandoned", kind.value, token)

    def _record_failure(self, kind: OperationKind, message: str) -> None:
        state = self._with_loading(self._state, kind, False)
        update: dict = {"errors": {**state.errors, kind: message}}
        if kind == OperationKind.UPLOAD_IMAGE:
            update["upload"] = state.upload.model_copy(update={"progress": 0})
        self._commit(state.model_copy(update=update))
        self._schedule_error_clear(kind, message)

    @staticmethod
    def _with_loading(state: SyncState, kind: OperationKind, value: bool) -> SyncState:
        return state.model_copy(update={"loading": {**state.loading, kind: value}})

    # Reconciliation rules
    @staticmethod
    def _replace_view(
        state: SyncState, view: ListView, page: PostPage, request: PageRequest
    ) -> SyncState:
        items_field, page_field = VIEW_FIELDS[view]
        if request.append and request.page > 1:
            existing = state.items(view)
            seen = {post.id for post in existing}
            items = existing + tuple(post for post in page.items if post.id not in seen)
        else:
            items = tuple(page.items)

        cursor = Pagination(page=request.page, limit=request.limit, total=page.total)
        return state.model_copy(update={items_field: items, page_field: cursor})

    def _reduce_create(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        post: Post = outcome.payload
        # Filtered views refresh on their own; a new post only lands in primary
        return state.model_copy(
            update={
                "primary": (post,) + _without_post(state.primary, post.id),
                "primary_page": state.primary_page.with_total(state.primary_page.total + 1),
            }
        )

    def _reduce_list(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        return self._replace_view(state, ListView.PRIMARY, outcome.payload, outcome.request)

    def _reduce_list_by_user(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        state = self._replace_view(state, ListView.BY_USER, outcome.payload, outcome.request)
        return state.model_copy(update={"selected_user_id": outcome.request.user_id})

    def _reduce_search(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        state = self._replace_view(
            state, ListView.SEARCH_RESULTS, outcome.payload, outcome.request
        )
        return state.model_copy(update={"search_query": outcome.request.query})

    def _reduce_get_by_id(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        return state.model_copy(update={"current": outcome.payload})

    def _reduce_update(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        post: Post = outcome.payload
        current = state.current
        if current is not None and current.id == post.id:
            current = post

        return state.model_copy(
            update={
                "primary": _replace_post(state.primary, post),
                "by_user": _replace_post(state.by_user, post),
                "search_results": _replace_post(state.search_results, post),
                "current": current,
            }
        )

    def _reduce_delete(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        post_id: str = outcome.request
        in_by_user = any(post.id == post_id for post in state.by_user)
        in_search = any(post.id == post_id for post in state.search_results)

        known = next(
            (
                post
                for post in (*state.primary, *state.by_user, *state.search_results)
                if post.id == post_id
            ),
            state.current if state.current is not None and state.current.id == post_id else None,
        )
        owned_by_selected = (
            known is not None
            and state.selected_user_id is not None
            and known.user_id == state.selected_user_id
        )

        current = state.current
        if current is not None and current.id == post_id:
            current = None

        by_user_page = state.by_user_page
        if in_by_user or owned_by_selected:
            by_user_page = by_user_page.with_total(by_user_page.total - 1)
        search_page = state.search_page
        if in_search:
            search_page = search_page.with_total(search_page.total - 1)

        return state.model_copy(
            update={
                "primary": _without_post(state.primary, post_id),
                "by_user": _without_post(state.by_user, post_id),
                "search_results": _without_post(state.search_results, post_id),
                "current": current,
                # The unfiltered feed holds every post, even on pages not loaded
                "primary_page": state.primary_page.with_total(state.primary_page.total - 1),
                "by_user_page": by_user_page,
                "search_page": search_page,
            }
        )

    def _reduce_upload_image(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        image: UploadedImage = outcome.payload
        return state.model_copy(
            update={"upload": UploadState(progress=100, url=image.url, path=image.path)}
        )

    def _reduce_delete_image(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        return state.model_copy(
            update={"upload": state.upload.model_copy(update={"url": None, "path": None})}
        )

    def _reduce_get_stats(self, state: SyncState, outcome: Fulfilled) -> SyncState:
        return state.model_copy(update={"stats": outcome.payload})

    # Error auto-clear
    def _schedule_error_clear(self, kind: OperationKind, message: str) -> None:
        self._cancel_error_timer(kind)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, {} error will not auto-clear", kind.value)
            return
        self._error_timers[kind] = loop.call_later(
            self.config.error_clear_delay, self._expire_error, kind, message
        )

    def _cancel_error_timer(self, kind: OperationKind) -> None:
        handle = self._error_timers.pop(kind, None)
        if handle is not None:
            handle.cancel()

    def _expire_error(self, kind: OperationKind, message: str) -> None:
        self._error_timers.pop(kind, None)
        if self._state.errors.get(kind) != message:
            return
        logger.debug("Auto-clearing {} error", kind.value)
        self._commit(
            self._state.model_copy(update={"errors": {**self._state.errors, kind: None}})
        )

    # Explicit actions
    def _clear_errors(self, state: SyncState, *kinds: OperationKind) -> SyncState:
        for kind in kinds:
            self._cancel_error_timer(kind)
        errors = {**state.errors, **{kind: None for kind in kinds}}
        return state.model_copy(update={"errors": errors})

    def clear_error(self, kind: OperationKind | None = None) -> None:
        """Clear the error of one kind, or of every kind when kind is None"""
        kinds = (kind,) if kind is not None else tuple(OperationKind)
        self._commit(self._clear_errors(self._state, *kinds))

    def clear_search(self) -> None:
        state = self._state.model_copy(
            update={
                "search_results": (),
                "search_query": "",
                "search_page": initial_state(self.config).search_page,
            }
        )
        self._commit(self._clear_errors(state, OperationKind.SEARCH))

    def clear_user_view(self) -> None:
        state = self._state.model_copy(
            update={
                "by_user": (),
                "selected_user_id": None,
                "by_user_page": initial_state(self.config).by_user_page,
            }
        )
        self._commit(self._clear_errors(state, OperationKind.LIST_BY_USER))

    def clear_current(self) -> None:
        state = self._state.model_copy(update={"current": None})
        self._commit(self._clear_errors(state, OperationKind.GET_BY_ID))

    def reset_upload_state(self) -> None:
        state = self._state.model_copy(update={"upload": UploadState()})
        self._commit(
            self._clear_errors(state, OperationKind.UPLOAD_IMAGE, OperationKind.DELETE_IMAGE)
        )

    def set_upload_progress(self, progress: int) -> None:
        progress = min(100, max(0, int(progress)))
        self._commit(
            self._state.model_copy(
                update={"upload": self._state.upload.model_copy(update={"progress": progress})}
            )
        )

    def set_search_query(self, query: str) -> None:
        self._commit(self._state.model_copy(update={"search_query": query}))

    def set_selected_user_id(self, user_id: str | None) -> None:
        self._commit(self._state.model_copy(update={"selected_user_id": user_id}))

    def reset(self) -> None:
        """Return to the initial state and invalidate every in-flight dispatch"""
        for kind in OperationKind:
            self._cancel_error_timer(kind)
            self._tokens[kind] += 1
        self._commit(initial_state(self.config))
        logger.debug("Store reset")
