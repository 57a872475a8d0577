"""JSON-file backend used when no remote store is configured.

Each collection lives in one blob named after a namespaced key, mirroring
the browser local storage layout of the web client::

    <directory>/gas_app_users.json
    <directory>/gas_app_complaints.json
    <directory>/gas_app_sms_settings.json
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from pathlib import Path
from typing import Any

from ..core.models import Attachment
from .base import Backend, Collection, attachment_key, guess_content_type

log = logging.getLogger(__name__)

KEY_PREFIX = "gas_app_"
SETTINGS_KEY = f"{KEY_PREFIX}sms_settings"


class LocalBackend(Backend):
    """Store every collection as a single JSON blob on disk."""

    is_remote = False

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Blob helpers
    # ------------------------------------------------------------------
    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError):
            log.exception("Unreadable blob %s, treating it as empty", path)
            return None

    def _write(self, key: str, value: Any) -> bool:
        """Persist ``value`` atomically."""
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError:
            log.exception("Failed to write blob %s", path)
            return False
        return True

    # ------------------------------------------------------------------
    # Backend API
    # ------------------------------------------------------------------
    async def fetch_all(self, collection: Collection) -> list[dict[str, Any]]:
        data = await asyncio.to_thread(self._read, KEY_PREFIX + collection)
        return data if isinstance(data, list) else []

    async def save_one(self, collection: Collection, item: dict[str, Any]) -> bool:
        items = await self.fetch_all(collection)
        for index, existing in enumerate(items):
            if existing.get("id") == item["id"]:
                items[index] = item
                break
        else:
            items.append(item)
        return await asyncio.to_thread(self._write, KEY_PREFIX + collection, items)

    async def save_all(
        self, collection: Collection, items: list[dict[str, Any]]
    ) -> bool:
        return await asyncio.to_thread(self._write, KEY_PREFIX + collection, list(items))

    async def delete_many(self, collection: Collection, ids: list[str]) -> bool:
        if not ids:
            return True
        doomed = set(ids)
        items = await self.fetch_all(collection)
        kept = [item for item in items if item.get("id") not in doomed]
        return await asyncio.to_thread(self._write, KEY_PREFIX + collection, kept)

    async def fetch_settings(self, default: dict[str, Any]) -> dict[str, Any]:
        data = await asyncio.to_thread(self._read, SETTINGS_KEY)
        return data if isinstance(data, dict) else default

    async def save_settings(self, settings: dict[str, Any]) -> bool:
        return await asyncio.to_thread(self._write, SETTINGS_KEY, settings)

    async def store_attachment(
        self, name: str, content: bytes, content_type: str | None = None
    ) -> Attachment | None:
        # No file host: embed the payload as a data URL.
        mime = content_type or guess_content_type(name)
        encoded = base64.b64encode(content).decode("ascii")
        return Attachment(
            id=attachment_key(name),
            name=name,
            url=f"data:{mime};base64,{encoded}",
        )
