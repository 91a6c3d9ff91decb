"""
bosbase_sdk.tier0_core.http
────────────────────────────
HTTP primitives shared by the request builder and the client: status codes,
content types and the reserved multipart field name.
"""
from __future__ import annotations


# ── Status code constants ──────────────────────────────────────────────────

class HTTP:
    """HTTP status codes the SDK inspects."""

    NO_CONTENT = 204
    NOT_FOUND = 404


# ── Content types ─────────────────────────────────────────────────────────

JSON_CONTENT_TYPE = "application/json"
OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain"

# Multipart field that carries the JSON-encoded body next to file parts.
JSON_PAYLOAD_FIELD = "@jsonPayload"


def is_success(status: int) -> bool:
    return 200 <= status < 400


__all__ = [
    "HTTP",
    "JSON_CONTENT_TYPE",
    "OCTET_STREAM",
    "TEXT_PLAIN",
    "JSON_PAYLOAD_FIELD",
    "is_success",
]
