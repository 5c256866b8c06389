"""Immutable state snapshots held by the store"""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from postsync.config import SyncConfig
from postsync.entities import ListView, Pagination, Post, PostStats
from postsync.operations import OperationKind


class UploadState(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    progress: int = Field(default=0, ge=0, le=100)
    url: str | None = None
    path: str | None = None


# Field names holding the items and cursor of each list view
VIEW_FIELDS: dict[ListView, tuple[str, str]] = {
    ListView.PRIMARY: ("primary", "primary_page"),
    ListView.BY_USER: ("by_user", "by_user_page"),
    ListView.SEARCH_RESULTS: ("search_results", "search_page"),
}


class SyncState(BaseModel):
    """One consistent snapshot of every view and status map.

    The store never edits a snapshot; each transition builds a new one with
    model_copy and swaps it in.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    primary: tuple[Post, ...] = ()
    by_user: tuple[Post, ...] = ()
    search_results: tuple[Post, ...] = ()
    current: Post | None = None

    primary_page: Pagination = Pagination()
    by_user_page: Pagination = Pagination()
    search_page: Pagination = Pagination()

    selected_user_id: str | None = None
    search_query: str = ""

    loading: dict[OperationKind, bool] = Field(
        default_factory=lambda: {kind: False for kind in OperationKind}
    )
    errors: dict[OperationKind, str | None] = Field(
        default_factory=lambda: {kind: None for kind in OperationKind}
    )

    upload: UploadState = UploadState()
    stats: PostStats = PostStats()

    def items(self, view: ListView) -> tuple[Post, ...]:
        return getattr(self, VIEW_FIELDS[view][0])

    def pagination(self, view: ListView) -> Pagination:
        return getattr(self, VIEW_FIELDS[view][1])


def initial_state(config: SyncConfig | None = None) -> SyncState:
    config = config or SyncConfig()
    cursor = Pagination(page=1, limit=config.page_size, total=0)
    return SyncState(primary_page=cursor, by_user_page=cursor, search_page=cursor)
