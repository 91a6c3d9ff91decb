"""
bosbase_sdk.tier3_platform.client
──────────────────────────────────
Async client for a BosBase backend. Builds the URL and content with the
request builder, attaches the auth token, sends through httpx and turns
every failure into a ClientResponseError.

Backed by: httpx (async HTTP). Connection pooling, TLS and retries belong
to httpx and its transports; this client adds none of its own.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from bosbase_sdk.tier0_core.attachments import FileAttachment
from bosbase_sdk.tier0_core.config import BosbaseConfig, get_config
from bosbase_sdk.tier0_core.errors import ClientResponseError
from bosbase_sdk.tier0_core.http import HTTP, JSON_CONTENT_TYPE, is_success
from bosbase_sdk.tier0_core.logging import get_logger
from bosbase_sdk.tier0_core.redact import redact_mapping, scrub_string
from bosbase_sdk.tier1_runtime.auth_store import AuthStore
from bosbase_sdk.tier1_runtime.request import (
    QueryParams,
    build_content,
    build_relative_url,
)
from bosbase_sdk.tier1_runtime.serialize import from_json, to_json
from bosbase_sdk.tier3_platform.services import (
    BackupService,
    HealthService,
    RecordService,
)

log = get_logger(__name__)


# ── Send options ─────────────────────────────────────────────────────────────

@dataclass
class SendOptions:
    """Everything that shapes one request. before_send hooks may edit it."""
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    files: list[FileAttachment] = field(default_factory=list)
    timeout: float | None = None

    def clone(self) -> "SendOptions":
        return replace(
            self,
            headers=dict(self.headers),
            query=dict(self.query),
            files=list(self.files),
        )


@dataclass
class BeforeSendResult:
    url: str | None = None
    options: SendOptions | None = None


BeforeSendHook = Callable[[str, SendOptions], Awaitable["BeforeSendResult | None"]]
AfterSendHook = Callable[[httpx.Response, Any, SendOptions], Awaitable[Any]]


# ── Client ───────────────────────────────────────────────────────────────────

class BosbaseClient:
    """
    Entry point to a BosBase API.

    Usage::

        async with BosbaseClient("https://api.example.com") as pb:
            health = await pb.health.check()
            posts = await pb.collection("posts").get_list(per_page=10)
    """

    def __init__(
        self,
        base_url: str | None = None,
        lang: str | None = None,
        auth_store: AuthStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        *,
        timeout: float | None = None,
        config: BosbaseConfig | None = None,
    ) -> None:
        cfg = config or get_config()
        normalized = (base_url if base_url is not None else cfg.base_url).strip().rstrip("/")
        self.base_url = normalized or "/"
        self.lang = lang or cfg.lang
        self.timeout = timeout if timeout is not None else cfg.timeout
        self.user_agent = cfg.user_agent
        self.auth_store = auth_store or AuthStore()
        self.before_send: BeforeSendHook | None = None
        self.after_send: AfterSendHook | None = None

        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self._record_services: dict[str, RecordService] = {}

        self.health = HealthService(self)
        self.backups = BackupService(self)

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def __aenter__(self) -> "BosbaseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this client created it."""
        if self._owns_http:
            await self._http.aclose()

    # ── Services ─────────────────────────────────────────────────────────────

    def collection(self, collection_id_or_name: str) -> RecordService:
        service = self._record_services.get(collection_id_or_name)
        if service is None:
            service = RecordService(self, collection_id_or_name)
            self._record_services[collection_id_or_name] = service
        return service

    # ── URL helpers ──────────────────────────────────────────────────────────

    def build_url(self, path: str, query: QueryParams | None = None) -> str:
        """Absolute URL for *path* under the base URL."""
        base = "" if self.base_url == "/" else self.base_url
        return base + build_relative_url(path, query)

    def filter(self, raw: str, params: Mapping[str, Any] | None = None) -> str:
        """
        Substitute ``{:name}`` placeholders in a filter expression with
        safely quoted literals.

            pb.filter("title ~ {:title} && created >= {:since}",
                      {"title": "it's", "since": datetime(2024, 1, 1)})
        """
        for key, value in (params or {}).items():
            raw = raw.replace("{:" + key + "}", _filter_literal(value))
        return raw

    # ── Sending ──────────────────────────────────────────────────────────────

    async def send(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        query: QueryParams | None = None,
        body: Any = None,
        files: Sequence[FileAttachment] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Send a request and return the decoded response.

        JSON responses come back as plain containers, 204 as None and
        anything else as raw bytes.

        Raises:
            ClientResponseError: on any failure while sending (status 0)
                or a response status >= 400.
            asyncio.CancelledError: when the calling task is cancelled.
        """
        options = SendOptions(
            method=method.upper(),
            headers=dict(headers or {}),
            query=dict(query or {}),
            body=body,
            files=list(files or ()),
            timeout=timeout,
        )
        url = self.build_url(path, options.query)

        if self.before_send is not None:
            hook_options = options.clone()
            result = await self.before_send(url, hook_options)
            options = hook_options
            if result is not None and result.options is not None:
                options = result.options
            url = self.build_url(path, options.query)
            if result is not None and result.url:
                url = result.url

        request_headers = httpx.Headers(options.headers)
        request_headers.setdefault("Accept-Language", self.lang)
        request_headers.setdefault("User-Agent", self.user_agent)
        if "Authorization" not in request_headers and self.auth_store.is_valid():
            request_headers["Authorization"] = self.auth_store.token

        request_kwargs: dict[str, Any] = {}
        content = build_content(options.body, options.files)
        if content is not None:
            request_kwargs = content.to_httpx()
            for name, value in request_kwargs.pop("headers", {}).items():
                request_headers.setdefault(name, value)

        log.debug(
            "client.request",
            method=options.method,
            url=scrub_string(url),
            headers=redact_mapping(dict(request_headers)),
        )

        try:
            response = await self._http.request(
                options.method,
                url,
                headers=request_headers,
                timeout=options.timeout or self.timeout,
                **request_kwargs,
            )
        except asyncio.CancelledError as exc:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                # the caller's task is being cancelled: let it unwind
                raise
            log.info("client.aborted", method=options.method, url=scrub_string(url))
            raise ClientResponseError.from_transport_error(exc, url, is_abort=True) from exc
        except Exception as exc:
            log.warning(
                "client.transport_error",
                method=options.method,
                url=scrub_string(url),
                error=type(exc).__name__,
            )
            raise ClientResponseError.from_transport_error(exc, url) from exc

        data = _decode_body(response)
        log.debug("client.response", status=response.status_code, url=scrub_string(url))

        if not is_success(response.status_code):
            raise ClientResponseError(
                url=url,
                status=response.status_code,
                response=data if isinstance(data, dict) else {},
            )

        if self.after_send is not None:
            data = await self.after_send(response, data, options)
        return data


# ── Helpers ──────────────────────────────────────────────────────────────────

def _decode_body(response: httpx.Response) -> Any:
    if response.status_code == HTTP.NO_CONTENT:
        return None
    content_type = response.headers.get("content-type", "").lower()
    if JSON_CONTENT_TYPE not in content_type:
        return response.content
    text = response.text
    if not text.strip():
        return None
    try:
        return from_json(text)
    except ValueError:
        return {}


def _quote(text: str) -> str:
    return "'" + text.replace("'", "\\'") + "'"


def _filter_literal(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return _quote(value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"))
    if isinstance(value, str):
        return _quote(value)
    return _quote(to_json(value))


__all__ = ["BosbaseClient", "SendOptions", "BeforeSendResult"]
