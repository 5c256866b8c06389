"""Client-side post synchronization layer"""

from postsync.client import PostClient
from postsync.config import BackendConfig, SyncConfig
from postsync.dispatcher import PostDispatcher
from postsync.entities import (
    ImageFile,
    ListView,
    Pagination,
    Post,
    PostDraft,
    PostPage,
    PostStats,
    PostStatus,
    PostUpdate,
    SortOrder,
    UploadedImage,
)
from postsync.exceptions import (
    GatewayError,
    NotFoundError,
    PostSyncError,
    SupersededOperation,
    ValidationError,
)
from postsync.gateway import PostGateway
from postsync.operations import OperationKind
from postsync.results import Err, Ok, OperationResult
from postsync.state import SyncState
from postsync.store import PostStore

__all__ = [
    "PostClient",
    "PostDispatcher",
    "PostStore",
    "PostGateway",
    "SyncConfig",
    "BackendConfig",
    "SyncState",
    "OperationKind",
    "OperationResult",
    "Ok",
    "Err",
    "Post",
    "PostDraft",
    "PostUpdate",
    "PostPage",
    "PostStats",
    "PostStatus",
    "Pagination",
    "ListView",
    "SortOrder",
    "ImageFile",
    "UploadedImage",
    "PostSyncError",
    "ValidationError",
    "GatewayError",
    "NotFoundError",
    "SupersededOperation",
]
