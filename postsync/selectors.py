"""Derived reads over a state snapshot.

Every function is pure: it takes a SyncState and computes its answer on each
call, so results always reflect the snapshot handed in.
"""

from postsync.entities import ListView, Pagination, Post
from postsync.operations import OperationKind
from postsync.state import SyncState


def find_by_id(state: SyncState, post_id: str) -> Post | None:
    """First post with post_id, scanning primary, then by_user, then search_results"""
    for view in (ListView.PRIMARY, ListView.BY_USER, ListView.SEARCH_RESULTS):
        for post in state.items(view):
            if post.id == post_id:
                return post
    return None


def is_any_operation_loading(state: SyncState) -> bool:
    return any(state.loading.values())


def has_any_operation_error(state: SyncState) -> bool:
    return any(error is not None for error in state.errors.values())


def is_loading(state: SyncState, kind: OperationKind) -> bool:
    return state.loading.get(kind, False)


def get_error(state: SyncState, kind: OperationKind) -> str | None:
    return state.errors.get(kind)


def has_error(state: SyncState, kind: OperationKind) -> bool:
    return get_error(state, kind) is not None


def get_view(state: SyncState, view: ListView) -> tuple[Post, ...]:
    return state.items(view)


def get_pagination(state: SyncState, view: ListView) -> Pagination:
    return state.pagination(view)


def has_items(state: SyncState, view: ListView) -> bool:
    return len(state.items(view)) > 0


def can_load_more(state: SyncState, view: ListView) -> bool:
    cursor = state.pagination(view)
    return cursor.page < cursor.total_pages


def next_page(state: SyncState, view: ListView) -> int:
    return state.pagination(view).page + 1
