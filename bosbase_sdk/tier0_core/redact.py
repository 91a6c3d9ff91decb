"""
bosbase_sdk.tier0_core.redact
──────────────────────────────
Secret redaction for anything the SDK logs. Auth tokens travel in the
Authorization header and in query strings (file and backup download URLs),
so both header maps and free-form strings are scrubbed before emission.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "[REDACTED]"

# Case-insensitive key names whose values never reach a log sink.
_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "authorization", "token", "password", "passwordconfirm", "oldpassword",
    "secret", "api_key", "apikey", "x-api-key", "cookie", "set-cookie",
    "access_token", "refresh_token", "client_secret",
})

_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Compact signed tokens (header.payload.signature)
    (re.compile(r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]*"), REDACTED),
    # Bearer prefix
    (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.I), f"Bearer {REDACTED}"),
    # token=... in query strings
    (re.compile(r"((?:^|[?&])(?:token|password)=)[^&#\s]+", re.I), rf"\1{REDACTED}"),
]


def redact_mapping(data: Mapping[str, Any], *, deep: bool = True) -> dict[str, Any]:
    """Return a copy of *data* with sensitive values replaced by REDACTED."""
    result: dict[str, Any] = {}
    for k, v in data.items():
        if isinstance(k, str) and k.lower() in _SENSITIVE_KEYS:
            result[k] = REDACTED
        elif deep and isinstance(v, Mapping):
            result[k] = redact_mapping(v, deep=True)
        elif isinstance(v, str):
            result[k] = scrub_string(v)
        else:
            result[k] = v
    return result


def scrub_string(text: str) -> str:
    for pattern, replacement in _PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def structlog_redact_processor(
    logger: Any,
    method: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor; must run before the renderer."""
    return redact_mapping(event_dict)


__all__ = ["REDACTED", "redact_mapping", "scrub_string", "structlog_redact_processor"]
