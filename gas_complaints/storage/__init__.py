"""Storage backends and the factory that picks one at startup."""

from __future__ import annotations

import logging

from ..config import Settings
from .base import COLLECTIONS, SETTINGS_ID, Backend, Collection
from .local import LocalBackend
from .remote import RemoteBackend

log = logging.getLogger(__name__)


def create_backend(settings: Settings) -> Backend:
    """Return the remote backend when it is configured, else the local one."""
    if settings.remote_configured:
        log.info("Using remote store at %s", settings.supabase_url)
        return RemoteBackend(
            settings.supabase_url,
            settings.supabase_key,
            timeout=settings.http_timeout,
        )
    log.info("Using local store in %s", settings.data_dir)
    return LocalBackend(settings.data_dir)


__all__ = [
    "COLLECTIONS",
    "SETTINGS_ID",
    "Backend",
    "Collection",
    "LocalBackend",
    "RemoteBackend",
    "create_backend",
]
