"""
Storage provider interface

Every backend stores the original upload bytes plus a small amount of
metadata, keyed by a short package id. Records can carry an expiry; expired
records are invisible to readers and are purged when encountered.
"""

import hashlib
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from package_viewer.models.package import PackageType

PACKAGE_ID_LENGTH = 10


class StorageError(Exception):
    """Raised when a backend cannot complete an operation."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_package_id() -> str:
    return uuid.uuid4().hex[:PACKAGE_ID_LENGTH]


def compute_checksum(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass
class StoredFile:
    filename: str
    mime_type: str
    size: int
    data: bytes
    checksum: Optional[str] = None

    @classmethod
    def from_bytes(cls, filename: str, mime_type: str, data: bytes) -> "StoredFile":
        return cls(
            filename=filename,
            mime_type=mime_type,
            size=len(data),
            data=data,
            checksum=compute_checksum(data),
        )


@dataclass
class PackageInput:
    id: str
    type: PackageType
    file: StoredFile
    metadata: Optional[Dict[str, Any]] = None
    uploaded_at: Optional[datetime] = None


@dataclass
class PackageRecord:
    id: str
    type: PackageType
    file: StoredFile
    uploaded_at: datetime
    metadata: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = field(default=None)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())


class StorageProvider(ABC):
    """Async storage interface shared by all backends."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds

    async def init(self) -> None:
        """Prepare the backend (create directories, tables...)."""

    async def close(self) -> None:
        """Release backend resources."""

    def _timestamps(
        self, payload: PackageInput
    ) -> Tuple[datetime, Optional[datetime]]:
        uploaded_at = payload.uploaded_at or utcnow()
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = uploaded_at + timedelta(seconds=self.ttl_seconds)
        return uploaded_at, expires_at

    def _build_record(self, payload: PackageInput) -> PackageRecord:
        uploaded_at, expires_at = self._timestamps(payload)
        return PackageRecord(
            id=payload.id,
            type=payload.type,
            file=payload.file,
            metadata=payload.metadata,
            uploaded_at=uploaded_at,
            expires_at=expires_at,
        )

    @abstractmethod
    async def store(self, payload: PackageInput) -> PackageRecord:
        ...

    @abstractmethod
    async def get(self, package_id: str) -> Optional[PackageRecord]:
        ...

    @abstractmethod
    async def delete(self, package_id: str) -> bool:
        ...

    @abstractmethod
    async def list(self) -> List[PackageRecord]:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def exists(self, package_id: str) -> bool:
        return await self.get(package_id) is not None

    async def ping(self) -> bool:
        """Readiness probe; backends override when they have something to check."""
        return True
