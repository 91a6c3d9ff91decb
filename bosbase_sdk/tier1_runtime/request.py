"""
bosbase_sdk.tier1_runtime.request
──────────────────────────────────
Request building: relative URLs with query strings, and request content from
a body value plus optional file attachments.

Content is modelled as a small tagged variant. JsonContent carries one JSON
document; MultipartContent carries a JSON part named ``@jsonPayload`` and one
stream part per attachment. The multipart framing itself is left to httpx:
``to_httpx()`` returns the keyword arguments for ``httpx.AsyncClient.request``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Union
from urllib.parse import quote

from bosbase_sdk.tier0_core.attachments import FileAttachment
from bosbase_sdk.tier0_core.http import JSON_CONTENT_TYPE, JSON_PAYLOAD_FIELD
from bosbase_sdk.tier1_runtime.serialize import to_json

QueryValue = Union[str, int, float, bool, None, Iterable[Any]]
QueryParams = Mapping[str, QueryValue]

# Characters left as-is in a path: separators plus RFC 3986 sub-delims.
# "%" is kept so already-escaped paths are not escaped twice.
_PATH_SAFE = "/%:@!$&'()*+,;=~"


# ── Query strings ───────────────────────────────────────────────────────────

def _query_scalar(value: Any) -> str:
    if isinstance(value, Mapping):
        raise TypeError("query values cannot be mappings")
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_query(query: QueryParams | None) -> dict[str, list[str]]:
    """
    Normalize a query map: None values are dropped, scalars become one-item
    lists, iterables keep their order. Keys keep insertion order. Bytes are
    read as UTF-8 text; a mapping value raises TypeError.
    """
    normalized: dict[str, list[str]] = {}
    if not query:
        return normalized

    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
            items: Iterable[Any] = (value,)
        else:
            items = value
        for item in items:
            if item is None:
                continue
            normalized.setdefault(str(key), []).append(_query_scalar(item))
    return normalized


def encode_query(query: QueryParams | None) -> str:
    """Percent-encode *query* as ``k=v&k=v2``; an empty map yields ``""``."""
    pairs = []
    for key, values in normalize_query(query).items():
        encoded_key = quote(key, safe="")
        for value in values:
            pairs.append(f"{encoded_key}={quote(value, safe='')}")
    return "&".join(pairs)


def encode_path_segment(value: Any) -> str:
    """Percent-encode one path segment, ``/`` included."""
    return quote(str(value), safe="")


def build_relative_url(path: str, query: QueryParams | None = None) -> str:
    """
    ``path`` with exactly one leading ``/`` and unsafe characters escaped,
    followed by the encoded query when there is one. A query already
    present in *path* is kept and extended with ``&``.
    """
    path, _, existing = path.partition("?")
    rel = "/" + quote(path.lstrip("/"), safe=_PATH_SAFE)
    query_string = "&".join(s for s in (existing, encode_query(query)) if s)
    if not query_string:
        return rel
    return f"{rel}?{query_string}"


# ── Request content ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class JsonPart:
    name: str
    text: str
    content_type: str = JSON_CONTENT_TYPE


@dataclass(frozen=True)
class StreamPart:
    name: str
    stream: BinaryIO
    file_name: str
    content_type: str


Part = Union[JsonPart, StreamPart]


class RequestContent(ABC):
    """Base for pre-built request bodies. build_content passes these through."""

    @abstractmethod
    def to_httpx(self) -> dict[str, Any]:
        """Keyword arguments for httpx.AsyncClient.request."""


@dataclass(frozen=True)
class JsonContent(RequestContent):
    text: str
    content_type: str = JSON_CONTENT_TYPE

    def to_httpx(self) -> dict[str, Any]:
        return {
            "content": self.text.encode("utf-8"),
            "headers": {"Content-Type": self.content_type},
        }


@dataclass(frozen=True)
class MultipartContent(RequestContent):
    """JSON part first, then file parts. httpx writes boundary and header."""
    parts: tuple[Part, ...] = field(default_factory=tuple)

    def to_httpx(self) -> dict[str, Any]:
        files: list[tuple[str, tuple[str | None, Any, str]]] = []
        for part in self.parts:
            if isinstance(part, JsonPart):
                files.append((part.name, (None, part.text.encode("utf-8"), part.content_type)))
            else:
                files.append((part.name, (part.file_name, part.stream, part.content_type)))
        return {"files": files}

    @property
    def json_parts(self) -> list[JsonPart]:
        return [p for p in self.parts if isinstance(p, JsonPart)]

    @property
    def stream_parts(self) -> list[StreamPart]:
        return [p for p in self.parts if isinstance(p, StreamPart)]


def build_content(
    body: Any,
    attachments: Sequence[FileAttachment] | None = None,
) -> RequestContent | None:
    """
    Build the request content for *body* and *attachments*.

    Without attachments a RequestContent body is returned as is, None gives
    no content, and anything else becomes a JSON document. With attachments
    the result is always multipart: the JSON part (``{}`` for a None body)
    followed by one stream part per attachment, in order.
    """
    files = list(attachments or ())
    if not files:
        if isinstance(body, RequestContent):
            return body
        if body is None:
            return None
        return JsonContent(to_json(body))

    payload = to_json(body) if body is not None else "{}"
    parts: list[Part] = [JsonPart(JSON_PAYLOAD_FIELD, payload)]
    for attachment in files:
        parts.append(StreamPart(
            name=attachment.field_name,
            stream=attachment.content,
            file_name=attachment.file_name,
            content_type=attachment.content_type or "",
        ))
    return MultipartContent(tuple(parts))


__all__ = [
    "QueryParams",
    "normalize_query",
    "encode_query",
    "encode_path_segment",
    "build_relative_url",
    "RequestContent",
    "JsonContent",
    "MultipartContent",
    "JsonPart",
    "StreamPart",
    "build_content",
]
