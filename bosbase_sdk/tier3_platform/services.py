"""
bosbase_sdk.tier3_platform.services
────────────────────────────────────
Resource services. Each one only assembles a path, query, body and
attachments and hands them to BosbaseClient.send().

Covered here: generic CRUD over a base path, collection records (with the
auth flows that write to the client's AuthStore), health and backups.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from bosbase_sdk.tier0_core.attachments import FileAttachment
from bosbase_sdk.tier0_core.errors import ClientResponseError
from bosbase_sdk.tier0_core.http import HTTP
from bosbase_sdk.tier1_runtime.request import encode_path_segment

if TYPE_CHECKING:
    from bosbase_sdk.tier3_platform.client import BosbaseClient


class BaseService:
    def __init__(self, client: "BosbaseClient") -> None:
        self.client = client


# ── CRUD ─────────────────────────────────────────────────────────────────────

def _with_fields(
    query: Mapping[str, Any] | None,
    **extra: Any,
) -> dict[str, Any]:
    """Copy *query*; explicit keyword fields only fill keys not already set."""
    params = dict(query or {})
    for key, value in extra.items():
        if value is not None:
            params.setdefault(key, value)
    return params


def _not_found(message: str, url: str | None = None) -> ClientResponseError:
    return ClientResponseError(
        url=url,
        status=HTTP.NOT_FOUND,
        response={"code": HTTP.NOT_FOUND, "message": message, "data": {}},
    )


class BaseCrudService(BaseService, ABC):
    """List/view/create/update/delete over ``base_crud_path``."""

    @property
    @abstractmethod
    def base_crud_path(self) -> str: ...

    async def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        *,
        skip_total: bool = False,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        params = dict(query or {})
        params.update({"page": page, "perPage": per_page, "skipTotal": skip_total})
        params = _with_fields(params, filter=filter, sort=sort, expand=expand, fields=fields)
        return await self.client.send(self.base_crud_path, query=params, headers=headers)

    async def get_full_list(
        self,
        batch: int = 500,
        *,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[Any]:
        """Fetch every item, *batch* per request, until a short page."""
        if batch <= 0:
            raise ValueError("batch must be > 0")

        result: list[Any] = []
        page = 1
        while True:
            data = await self.get_list(
                page,
                batch,
                skip_total=True,
                filter=filter,
                sort=sort,
                expand=expand,
                fields=fields,
                query=query,
                headers=headers,
            )
            items = data.get("items") if isinstance(data, dict) else None
            if not isinstance(items, list):
                break
            result.extend(items)
            if len(items) < int(data.get("perPage", batch)):
                break
            page += 1
        return result

    async def get_one(
        self,
        record_id: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        if not record_id or not record_id.strip():
            raise _not_found(
                "Missing required record id.",
                url=self.client.build_url(f"{self.base_crud_path}/"),
            )
        return await self.client.send(
            f"{self.base_crud_path}/{encode_path_segment(record_id)}",
            query=_with_fields(query, expand=expand, fields=fields),
            headers=headers,
        )

    async def get_first_list_item(
        self,
        filter: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        data = await self.get_list(
            1,
            1,
            skip_total=True,
            filter=filter,
            expand=expand,
            fields=fields,
            query=query,
            headers=headers,
        )
        items = data.get("items") if isinstance(data, dict) else None
        if isinstance(items, list) and items and isinstance(items[0], dict):
            return items[0]
        raise _not_found("The requested resource wasn't found.")

    async def create(
        self,
        body: Any = None,
        *,
        files: Sequence[FileAttachment] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self.client.send(
            self.base_crud_path,
            method="POST",
            body=body,
            files=files,
            query=_with_fields(query, expand=expand, fields=fields),
            headers=headers,
        )

    async def update(
        self,
        record_id: str,
        body: Any = None,
        *,
        files: Sequence[FileAttachment] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self.client.send(
            f"{self.base_crud_path}/{encode_path_segment(record_id)}",
            method="PATCH",
            body=body,
            files=files,
            query=_with_fields(query, expand=expand, fields=fields),
            headers=headers,
        )

    async def delete(
        self,
        record_id: str,
        *,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self.client.send(
            f"{self.base_crud_path}/{encode_path_segment(record_id)}",
            method="DELETE",
            body=body,
            query=query,
            headers=headers,
        )


class RecordService(BaseCrudService):
    """
    CRUD over the records of one collection, plus its auth endpoints.

    Successful auth calls save the returned token and record into
    ``client.auth_store``. Updating the authenticated record merges the new
    fields into the stored one; deleting it clears the store.
    """

    def __init__(self, client: "BosbaseClient", collection_id_or_name: str) -> None:
        super().__init__(client)
        self.collection_id_or_name = collection_id_or_name

    @property
    def base_collection_path(self) -> str:
        return f"/api/collections/{encode_path_segment(self.collection_id_or_name)}"

    @property
    def base_crud_path(self) -> str:
        return f"{self.base_collection_path}/records"

    # ── CRUD with auth store sync ────────────────────────────────────────────

    async def update(
        self,
        record_id: str,
        body: Any = None,
        *,
        files: Sequence[FileAttachment] | None = None,
        expand: str | None = None,
        fields: str | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        item = await super().update(
            record_id,
            body,
            files=files,
            expand=expand,
            fields=fields,
            query=query,
            headers=headers,
        )
        self._sync_auth_record(item)
        return item

    async def delete(
        self,
        record_id: str,
        *,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await super().delete(record_id, body=body, query=query, headers=headers)
        if self._is_auth_record(record_id):
            self.client.auth_store.clear()

    # ── Auth ─────────────────────────────────────────────────────────────────

    async def auth_with_password(
        self,
        identity: str,
        password: str,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        payload = {**(body or {}), "identity": identity, "password": password}
        data = await self.client.send(
            f"{self.base_collection_path}/auth-with-password",
            method="POST",
            body=payload,
            query=_with_fields(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._auth_response(data)

    async def auth_refresh(
        self,
        *,
        expand: str | None = None,
        fields: str | None = None,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Exchange the stored token for a fresh one."""
        data = await self.client.send(
            f"{self.base_collection_path}/auth-refresh",
            method="POST",
            body=body,
            query=_with_fields(query, expand=expand, fields=fields),
            headers=headers,
        )
        return self._auth_response(data)

    def _auth_response(self, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            return {}
        token = data.get("token")
        record = data.get("record")
        if isinstance(token, str) and token.strip() and isinstance(record, Mapping):
            self.client.auth_store.save(token, record)
        return data

    def _is_auth_record(self, record_id: str) -> bool:
        current = self.client.auth_store.record
        if current is None or str(current.get("id", "")) != record_id:
            return False
        return self.collection_id_or_name in (
            current.get("collectionId"),
            current.get("collectionName"),
        )

    def _sync_auth_record(self, item: Any) -> None:
        if not isinstance(item, Mapping) or not self._is_auth_record(str(item.get("id"))):
            return
        current = self.client.auth_store.record
        merged = {**current, **item}
        # expand maps are merged one level deep, not replaced
        old_expand, new_expand = current.get("expand"), item.get("expand")
        if isinstance(old_expand, Mapping) and isinstance(new_expand, Mapping):
            merged["expand"] = {**old_expand, **new_expand}
        self.client.auth_store.save(self.client.auth_store.token, merged)


# ── Health ───────────────────────────────────────────────────────────────────

class HealthService(BaseService):
    async def check(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self.client.send("/api/health", query=query, headers=headers)


# ── Backups ──────────────────────────────────────────────────────────────────

class BackupService(BaseService):
    async def get_full_list(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        data = await self.client.send("/api/backups", query=query, headers=headers)
        return list(data or [])

    async def create(
        self,
        name: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        payload = {**(body or {}), "name": name}
        await self.client.send(
            "/api/backups", method="POST", body=payload, query=query, headers=headers
        )

    async def upload(
        self,
        files: Sequence[FileAttachment],
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self.client.send(
            "/api/backups/upload",
            method="POST",
            body=body,
            files=files,
            query=query,
            headers=headers,
        )

    async def delete(
        self,
        key: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self.client.send(
            f"/api/backups/{encode_path_segment(key)}",
            method="DELETE",
            query=query,
            headers=headers,
        )

    async def restore(
        self,
        key: str,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self.client.send(
            f"/api/backups/{encode_path_segment(key)}/restore",
            method="POST",
            query=query,
            headers=headers,
        )

    def get_download_url(
        self,
        token: str,
        key: str,
        query: Mapping[str, Any] | None = None,
    ) -> str:
        """Absolute download URL; *token* is a short-lived file token."""
        params = {**(query or {}), "token": token}
        return self.client.build_url(f"/api/backups/{encode_path_segment(key)}", params)


__all__ = [
    "BaseService",
    "BaseCrudService",
    "RecordService",
    "HealthService",
    "BackupService",
]
