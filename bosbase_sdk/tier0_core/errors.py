"""
bosbase_sdk.tier0_core.errors
──────────────────────────────
Error taxonomy for the SDK. Every request that fails, whether the transport
broke down or the server answered with an error status, reaches the caller as
a single ClientResponseError so callers never handle httpx exceptions.

Status 0 means no HTTP response was obtained.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_NETWORK_FAILURE = "Network request failed."
_REQUEST_FAILED = "Request failed."


# ── Base error ────────────────────────────────────────────────────────────────

class BosbaseError(Exception):
    """Base class for all SDK errors."""


# ── Error envelope ────────────────────────────────────────────────────────────

class ClientResponseError(BosbaseError):
    """
    Normalized failure of a request attempt.

    - url: the URL the request was sent to (if known)
    - status: HTTP status, 0 when no response was obtained
    - response: decoded error body, empty dict when there is none
    - is_abort: True when the request was deliberately cancelled
    - original_error: the underlying transport exception, if any
    """

    def __init__(
        self,
        url: str | None = None,
        status: int = 0,
        response: Mapping[str, Any] | None = None,
        is_abort: bool = False,
        original_error: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        self.url = url
        self.status = status
        self.response: dict[str, Any] = dict(response or {})
        self.is_abort = is_abort
        self.original_error = original_error
        self.message = message or _build_message(status, self.response)
        super().__init__(self.message)

    @classmethod
    def from_transport_error(
        cls,
        exc: BaseException,
        url: str | None = None,
        *,
        is_abort: bool = False,
    ) -> "ClientResponseError":
        """Wrap a failure that happened before any HTTP response arrived."""
        return cls(
            url=url,
            status=0,
            is_abort=is_abort,
            original_error=exc,
            message=str(exc) or _NETWORK_FAILURE,
        )

    @property
    def data(self) -> dict[str, Any]:
        """Per-field validation details reported by the server."""
        data = self.response.get("data")
        return data if isinstance(data, dict) else {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status,
            "response": self.response,
            "isAbort": self.is_abort,
            "message": self.message,
        }

    def __repr__(self) -> str:
        return f"ClientResponseError(status={self.status}, url={self.url!r}, message={self.message!r})"


def _build_message(status: int, response: Mapping[str, Any]) -> str:
    if status == 0:
        return _NETWORK_FAILURE
    detail = response.get("message")
    if not isinstance(detail, str):
        detail = _REQUEST_FAILED
    return f"{status}: {detail}"


__all__ = ["BosbaseError", "ClientResponseError"]
