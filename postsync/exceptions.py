"""Error taxonomy for the synchronization layer"""


class PostSyncError(Exception):
    """Base class for all postsync errors."""


class ValidationError(PostSyncError, ValueError):
    """Required input is missing or invalid.

    Raised by the dispatcher before anything is dispatched, so the store never
    sees the operation. Callers are expected to catch it.
    """


class GatewayError(PostSyncError):
    """The remote call failed or returned a failure envelope."""


class NotFoundError(GatewayError):
    """A get/update/delete target does not exist."""


class SupersededOperation(PostSyncError):
    """A newer dispatch of the same operation kind replaced this one.

    Internal only. The store discards the outcome and nothing is shown to the user.
    """

    def __init__(self, kind: str, token: int, latest: int):
        super().__init__(f"{kind} #{token} superseded by #{latest}")
        self.kind = kind
        self.token = token
        self.latest = latest
