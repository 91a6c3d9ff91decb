"""
bosbase_sdk.tier1_runtime.auth_store
─────────────────────────────────────
Authentication state shared by every request a client makes: the current
token and the authenticated account record.

The pair lives in one immutable AuthSnapshot that is swapped under a lock,
so readers always see a token together with its own record. Listeners run
after the lock is released, in registration order; one that raises is logged
and skipped.

is_valid() only reads the ``exp`` claim of the token. It does not verify the
signature and is not an authentication check.
"""
from __future__ import annotations

import base64
import binascii
import json
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable

from bosbase_sdk.tier0_core.logging import get_logger
from bosbase_sdk.tier1_runtime.clock import Clock, system_clock

log = get_logger(__name__)

AuthListener = Callable[[str, "dict[str, Any] | None"], None]


@dataclass(frozen=True)
class AuthSnapshot:
    token: str = ""
    record: Mapping[str, Any] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.token


class AuthStore:
    """
    Thread-safe token + record holder with change listeners.

    Usage::

        store = AuthStore()
        store.on_change(lambda token, record: persist(token))
        store.save(token, record)
        if store.is_valid():
            ...
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = AuthSnapshot()
        self._listeners: list[AuthListener] = []
        self._clock = clock or system_clock()

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    @property
    def token(self) -> str:
        return self._snapshot.token

    @property
    def record(self) -> Mapping[str, Any] | None:
        return self._snapshot.record

    def save(self, token: str | None, record: Mapping[str, Any] | None = None) -> None:
        """Replace token and record together, then notify listeners."""
        frozen_record = MappingProxyType(dict(record)) if record is not None else None
        snapshot = AuthSnapshot(token or "", frozen_record)

        with self._lock:
            self._snapshot = snapshot
            listeners = list(self._listeners)

        log.debug("auth_store.saved", has_token=bool(snapshot.token), listeners=len(listeners))

        for listener in listeners:
            try:
                listener(snapshot.token, dict(snapshot.record) if snapshot.record is not None else None)
            except Exception as exc:
                log.warning(
                    "auth_store.listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(exc),
                )

    def clear(self) -> None:
        self.save("", None)

    # ── Listeners ────────────────────────────────────────────────────────────

    def add_listener(self, listener: AuthListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: AuthListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def on_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register *listener* and return a function that unregisters it."""
        self.add_listener(listener)
        return lambda: self.remove_listener(listener)

    # ── Expiry ───────────────────────────────────────────────────────────────

    def is_valid(self) -> bool:
        """
        True when the token declares an ``exp`` later than now.
        Advisory only: the signature is never checked. Malformed tokens
        give False, never an exception.
        """
        claims = decode_token_payload(self._snapshot.token)
        if claims is None:
            return False
        exp = claims.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return False
        return exp > self._clock.epoch_seconds()


def decode_token_payload(token: str) -> dict[str, Any] | None:
    """Decode the middle segment of a compact token without verifying it."""
    if not token or not token.strip():
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None

    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        raw = base64.b64decode(
            segment.replace("-", "+").replace("_", "/"),
            validate=True,
        )
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError):
        # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
        return None
    if not isinstance(payload, dict):
        return None
    return payload


__all__ = ["AuthStore", "AuthSnapshot", "AuthListener", "decode_token_payload"]
