"""Result values returned by gateways and envelopes returned to callers"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class Ok[T]:
    """Successful gateway call"""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed gateway call carrying a user-facing message"""

    message: str


type Result[T] = Ok[T] | Err


class OperationResult(BaseModel):
    """Envelope returned by every dispatch.

    Usage:
        result = await client.create_post("Title", "Body", user_id="u1")
        if result.success:
            post = result.data
        elif not result.superseded:
            show_banner(result.error)
    """

    success: bool
    data: Any = None
    error: str | None = None
    superseded: bool = False

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)

    @classmethod
    def discarded(cls) -> "OperationResult":
        """Result of a dispatch whose outcome arrived after a newer dispatch"""
        return cls(success=False, superseded=True)
