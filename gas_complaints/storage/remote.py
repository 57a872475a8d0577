"""Remote backend talking to a Supabase project over its REST API.

Each collection is a table with two columns, ``id`` (primary key) and
``data`` (the JSON document). Writes are upserts on ``id`` with
last-write-wins semantics. Attachments are uploaded to the public
``attachments`` storage bucket.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.models import Attachment
from .base import (
    SETTINGS_ID,
    Backend,
    Collection,
    attachment_key,
    guess_content_type,
)

log = logging.getLogger(__name__)

ATTACHMENT_BUCKET = "attachments"


class RemoteBackend(Backend):
    """Backend that stores rows through PostgREST using :mod:`httpx`."""

    is_remote = True

    def __init__(
        self,
        url: str,
        key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Store the project ``url`` and anon ``key`` and an optional client."""
        self.url = url.rstrip("/")
        self.key = key
        self.client = client or httpx.AsyncClient(timeout=timeout)

    # ------------------------------------------------------------------
    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"apikey": self.key, "Authorization": f"Bearer {self.key}"}
        headers.update(extra)
        return headers

    def _table_url(self, collection: Collection) -> str:
        return f"{self.url}/rest/v1/{collection}"

    async def _upsert(self, collection: Collection, rows: list[dict[str, Any]]) -> bool:
        response = await self.client.post(
            self._table_url(collection),
            params={"on_conflict": "id"},
            json=rows,
            headers=self._headers(
                Prefer="resolution=merge-duplicates,return=minimal"
            ),
        )
        response.raise_for_status()
        return True

    # ------------------------------------------------------------------
    async def fetch_all(self, collection: Collection) -> list[dict[str, Any]]:
        try:
            response = await self.client.get(
                self._table_url(collection),
                params={"select": "data"},
                headers=self._headers(),
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError):
            log.exception("Error fetching %s", collection)
            return []
        return [row["data"] for row in rows if row.get("data") is not None]

    async def save_one(self, collection: Collection, item: dict[str, Any]) -> bool:
        try:
            return await self._upsert(collection, [{"id": item["id"], "data": item}])
        except httpx.HTTPError:
            log.exception("Error saving %s to %s", item.get("id"), collection)
            return False

    async def save_all(
        self, collection: Collection, items: list[dict[str, Any]]
    ) -> bool:
        if not items:
            return True
        rows = [{"id": item["id"], "data": item} for item in items]
        try:
            return await self._upsert(collection, rows)
        except httpx.HTTPError:
            log.exception("Error bulk saving %s", collection)
            return False

    async def delete_many(self, collection: Collection, ids: list[str]) -> bool:
        if not ids:
            return True
        quoted = ",".join(f'"{i}"' for i in ids)
        try:
            response = await self.client.delete(
                self._table_url(collection),
                params={"id": f"in.({quoted})"},
                headers=self._headers(Prefer="return=minimal"),
            )
            response.raise_for_status()
        except httpx.HTTPError:
            log.exception("Error deleting %d rows from %s", len(ids), collection)
            return False
        return True

    async def fetch_settings(self, default: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.get(
                self._table_url("settings"),
                params={"select": "data", "id": f"eq.{SETTINGS_ID}"},
                headers=self._headers(),
            )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError):
            log.exception("Error fetching settings")
            return default
        if not rows or not isinstance(rows[0].get("data"), dict):
            return default
        return rows[0]["data"]

    async def save_settings(self, settings: dict[str, Any]) -> bool:
        try:
            return await self._upsert(
                "settings", [{"id": SETTINGS_ID, "data": settings}]
            )
        except httpx.HTTPError:
            log.exception("Error saving settings")
            return False

    async def store_attachment(
        self, name: str, content: bytes, content_type: str | None = None
    ) -> Attachment | None:
        key = attachment_key(name)
        try:
            response = await self.client.post(
                f"{self.url}/storage/v1/object/{ATTACHMENT_BUCKET}/{key}",
                content=content,
                headers=self._headers(
                    **{"Content-Type": content_type or guess_content_type(name)}
                ),
            )
            response.raise_for_status()
        except httpx.HTTPError:
            log.exception("Error uploading attachment %s", name)
            return None
        public_url = f"{self.url}/storage/v1/object/public/{ATTACHMENT_BUCKET}/{key}"
        return Attachment(id=key, name=name, url=public_url)

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
