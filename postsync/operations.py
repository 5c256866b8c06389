"""Operation kinds, request parameters and tagged outcomes"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from postsync.entities import PostStatus, SortOrder


class OperationKind(str, Enum):
    CREATE = "create"
    LIST = "list"
    LIST_BY_USER = "list_by_user"
    GET_BY_ID = "get_by_id"
    UPDATE = "update"
    DELETE = "delete"
    SEARCH = "search"
    UPLOAD_IMAGE = "upload_image"
    DELETE_IMAGE = "delete_image"
    GET_STATS = "get_stats"


class PageRequest(BaseModel):
    """Paging parameters shared by every list query.

    append=True asks the store to keep the items already in the view and add
    this page after them instead of replacing the view.
    """

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    status: PostStatus | None = None
    append: bool = False


class ListRequest(PageRequest):
    sort_key: str = "created_at"
    sort_order: SortOrder = SortOrder.DESC


class UserListRequest(PageRequest):
    user_id: str


class SearchRequest(PageRequest):
    query: str


@dataclass(frozen=True)
class Pending:
    """The operation has been dispatched and is awaiting the gateway"""

    kind: OperationKind
    token: int


@dataclass(frozen=True)
class Fulfilled:
    """The gateway succeeded; payload is reconciled into the views"""

    kind: OperationKind
    token: int
    payload: Any = None
    request: Any = None


@dataclass(frozen=True)
class Rejected:
    """The gateway failed; only loading/error state changes"""

    kind: OperationKind
    token: int
    message: str


type Outcome = Pending | Fulfilled | Rejected
