"""
Filesystem-backed storage.

Object-store style layout, one directory per package::

    <root>/<package_id>/file.bin
    <root>/<package_id>/meta.json
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import aiofiles

from package_viewer.models.package import PackageType
from .base import (
    PackageInput,
    PackageRecord,
    StorageError,
    StorageProvider,
    StoredFile,
    utcnow,
)

logger = logging.getLogger(__name__)

FILE_NAME = "file.bin"
META_NAME = "meta.json"

# Ids become directory names; anything else is treated as unknown
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class FilesystemStorage(StorageProvider):
    def __init__(self, root: Union[str, Path], ttl_seconds: Optional[int] = None):
        super().__init__(ttl_seconds)
        self.root = Path(root)

    async def init(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("Filesystem storage ready at %s", self.root)

    def _package_dir(self, package_id: str) -> Optional[Path]:
        if not _SAFE_ID.match(package_id or ""):
            return None
        return self.root / package_id

    async def store(self, payload: PackageInput) -> PackageRecord:
        package_dir = self._package_dir(payload.id)
        if package_dir is None:
            raise StorageError(f"Invalid package id: {payload.id!r}")

        record = self._build_record(payload)
        meta = {
            "id": record.id,
            "type": record.type.value,
            "filename": record.file.filename,
            "mimeType": record.file.mime_type,
            "size": record.file.size,
            "checksum": record.file.checksum,
            "metadata": record.metadata,
            "uploadedAt": record.uploaded_at.isoformat(),
            "expiresAt": record.expires_at.isoformat() if record.expires_at else None,
        }

        try:
            package_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(package_dir / FILE_NAME, "wb") as f:
                await f.write(record.file.data)
            # Metadata last: a directory without meta.json is not a package
            async with aiofiles.open(package_dir / META_NAME, "w", encoding="utf-8") as f:
                await f.write(json.dumps(meta))
        except OSError as e:
            logger.error(f"Failed to store package {record.id}: {e}")
            raise StorageError(f"Failed to store package {record.id}: {e}")

        return record

    async def _read_meta(self, package_dir: Path) -> Optional[dict]:
        meta_path = package_dir / META_NAME
        if not meta_path.is_file():
            return None
        try:
            async with aiofiles.open(meta_path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable metadata at %s: %s", meta_path, e)
            return None

    async def _load(self, package_dir: Path) -> Optional[PackageRecord]:
        meta = await self._read_meta(package_dir)
        if meta is None:
            return None

        expires_at = (
            datetime.fromisoformat(meta["expiresAt"]) if meta.get("expiresAt") else None
        )
        if expires_at is not None and expires_at <= utcnow():
            self._remove_dir(package_dir)
            return None

        try:
            async with aiofiles.open(package_dir / FILE_NAME, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise StorageError(f"Failed to read package {meta['id']}: {e}")

        return PackageRecord(
            id=meta["id"],
            type=PackageType(meta["type"]),
            file=StoredFile(
                filename=meta["filename"],
                mime_type=meta["mimeType"],
                size=meta["size"],
                data=data,
                checksum=meta.get("checksum"),
            ),
            metadata=meta.get("metadata"),
            uploaded_at=datetime.fromisoformat(meta["uploadedAt"]),
            expires_at=expires_at,
        )

    def _remove_dir(self, package_dir: Path) -> None:
        for child in package_dir.iterdir():
            child.unlink()
        package_dir.rmdir()

    async def get(self, package_id: str) -> Optional[PackageRecord]:
        package_dir = self._package_dir(package_id)
        if package_dir is None or not package_dir.is_dir():
            return None
        return await self._load(package_dir)

    async def delete(self, package_id: str) -> bool:
        package_dir = self._package_dir(package_id)
        if package_dir is None or not package_dir.is_dir():
            return False
        self._remove_dir(package_dir)
        return True

    async def list(self) -> List[PackageRecord]:
        if not self.root.is_dir():
            return []
        records = []
        for package_dir in sorted(self.root.iterdir()):
            if not package_dir.is_dir():
                continue
            record = await self._load(package_dir)
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: r.uploaded_at)
        return records

    async def clear(self) -> None:
        if not self.root.is_dir():
            return
        for package_dir in self.root.iterdir():
            if package_dir.is_dir() and _SAFE_ID.match(package_dir.name):
                self._remove_dir(package_dir)

    async def ping(self) -> bool:
        return self.root.is_dir()
