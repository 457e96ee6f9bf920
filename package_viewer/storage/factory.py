"""Storage backend selection and the FastAPI dependency that exposes it."""

import logging

from fastapi import Request

from package_viewer.config import Settings, StorageBackend
from .base import StorageProvider
from .database import DatabaseStorage
from .filesystem import FilesystemStorage
from .memory import InMemoryStorage

logger = logging.getLogger(__name__)


def create_storage(settings: Settings) -> StorageProvider:
    backend = settings.storage_backend
    ttl = settings.package_ttl_seconds
    logger.info("Using %s storage backend (ttl=%s)", backend.value, ttl)

    if backend is StorageBackend.FILESYSTEM:
        return FilesystemStorage(settings.storage_dir, ttl_seconds=ttl)
    if backend is StorageBackend.DATABASE:
        return DatabaseStorage(
            settings.database_url, ttl_seconds=ttl, echo=settings.sql_echo
        )
    return InMemoryStorage(ttl_seconds=ttl)


def get_storage(request: Request) -> StorageProvider:
    """FastAPI dependency returning the storage created at startup."""
    return request.app.state.storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
