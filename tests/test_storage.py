"""
Storage provider tests

The same behaviour is checked against every backend.
"""

from datetime import timedelta

import pytest

from package_viewer.config import Settings, StorageBackend
from package_viewer.models.package import PackageType
from package_viewer.storage.base import (
    PackageInput,
    StorageError,
    StoredFile,
    compute_checksum,
    generate_package_id,
    utcnow,
)
from package_viewer.storage.database import DatabaseStorage
from package_viewer.storage.factory import create_storage
from package_viewer.storage.filesystem import FilesystemStorage
from package_viewer.storage.memory import InMemoryStorage


def _payload(package_id="pkg0000001", uploaded_at=None, data=b"PK\x03\x04data"):
    return PackageInput(
        id=package_id,
        type=PackageType.SCORM,
        file=StoredFile.from_bytes("course.zip", "application/zip", data),
        metadata={"note": "test"},
        uploaded_at=uploaded_at,
    )


@pytest.fixture(params=["memory", "filesystem", "database"])
async def backend_factory(request, tmp_path):
    """Factory building a fresh, initialized backend of each kind"""
    created = []

    async def make(ttl_seconds=None):
        if request.param == "memory":
            backend = InMemoryStorage(ttl_seconds=ttl_seconds)
        elif request.param == "filesystem":
            backend = FilesystemStorage(tmp_path / "store", ttl_seconds=ttl_seconds)
        else:
            db_path = tmp_path / f"packages_{len(created)}.db"
            backend = DatabaseStorage(
                f"sqlite+aiosqlite:///{db_path}", ttl_seconds=ttl_seconds
            )
        await backend.init()
        created.append(backend)
        return backend

    yield make

    for backend in created:
        await backend.close()


class TestStorageProviders:
    async def test_store_and_get(self, backend_factory):
        storage = await backend_factory()
        stored = await storage.store(_payload())

        record = await storage.get("pkg0000001")
        assert record is not None
        assert record.id == stored.id
        assert record.type is PackageType.SCORM
        assert record.file.data == b"PK\x03\x04data"
        assert record.file.size == len(b"PK\x03\x04data")
        assert record.file.checksum == compute_checksum(b"PK\x03\x04data")
        assert record.metadata == {"note": "test"}
        assert record.expires_at is None
        assert record.uploaded_at == stored.uploaded_at

    async def test_missing_package(self, backend_factory):
        storage = await backend_factory()
        assert await storage.get("nope") is None
        assert await storage.exists("nope") is False
        assert await storage.delete("nope") is False

    async def test_delete(self, backend_factory):
        storage = await backend_factory()
        await storage.store(_payload())

        assert await storage.delete("pkg0000001") is True
        assert await storage.exists("pkg0000001") is False

    async def test_list_and_clear(self, backend_factory):
        storage = await backend_factory()
        first = utcnow() - timedelta(minutes=5)
        await storage.store(_payload("pkgA", uploaded_at=first))
        await storage.store(_payload("pkgB", uploaded_at=first + timedelta(minutes=1)))

        assert [r.id for r in await storage.list()] == ["pkgA", "pkgB"]

        await storage.clear()
        assert await storage.list() == []

    async def test_ttl_sets_expiry(self, backend_factory):
        storage = await backend_factory(ttl_seconds=60)
        record = await storage.store(_payload())

        assert record.expires_at == record.uploaded_at + timedelta(seconds=60)
        assert await storage.exists("pkg0000001") is True

    async def test_expired_records_are_invisible(self, backend_factory):
        storage = await backend_factory(ttl_seconds=60)
        await storage.store(_payload("old", uploaded_at=utcnow() - timedelta(hours=1)))
        await storage.store(_payload("new"))

        assert await storage.get("old") is None
        assert [r.id for r in await storage.list()] == ["new"]

    async def test_ping(self, backend_factory):
        storage = await backend_factory()
        assert await storage.ping() is True


class TestFilesystemStorage:
    async def test_layout(self, tmp_path):
        storage = FilesystemStorage(tmp_path)
        await storage.init()
        await storage.store(_payload("abc123"))

        assert (tmp_path / "abc123" / "file.bin").read_bytes() == b"PK\x03\x04data"
        assert (tmp_path / "abc123" / "meta.json").is_file()

    async def test_rejects_path_like_ids(self, tmp_path):
        storage = FilesystemStorage(tmp_path / "store")
        await storage.init()

        with pytest.raises(StorageError):
            await storage.store(_payload("../escape"))
        assert await storage.get("../escape") is None


class TestDatabaseStorage:
    async def test_duplicate_id_is_storage_error(self, tmp_path):
        storage = DatabaseStorage(f"sqlite+aiosqlite:///{tmp_path / 'dup.db'}")
        await storage.init()
        try:
            await storage.store(_payload())
            with pytest.raises(StorageError):
                await storage.store(_payload())
        finally:
            await storage.close()


class TestStorageFactory:
    def test_selects_backend(self, tmp_path):
        assert isinstance(create_storage(Settings()), InMemoryStorage)

        fs = create_storage(
            Settings(storage_backend=StorageBackend.FILESYSTEM, storage_dir=str(tmp_path))
        )
        assert isinstance(fs, FilesystemStorage)

    def test_ttl_is_passed_through(self):
        storage = create_storage(Settings(package_ttl_seconds=30))
        assert storage.ttl_seconds == 30

    def test_package_ids(self):
        ids = {generate_package_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(len(i) == 10 and int(i, 16) >= 0 for i in ids)
