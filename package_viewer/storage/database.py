"""
Database-backed storage.

Persists packages (bytes included) through SQLAlchemy's async engine. Tables
are created on ``init()``.
"""

import logging
from datetime import timezone
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from package_viewer.db.config import create_engine, create_session_factory, session_scope
from package_viewer.models.package import PackageType
from package_viewer.models.persisted_package import Base, PackageRow
from package_viewer.repositories.package_repo import (
    PackageConflictError,
    PackageNotFoundError,
    PackageRepository,
)
from .base import (
    PackageInput,
    PackageRecord,
    StorageError,
    StorageProvider,
    StoredFile,
    utcnow,
)

logger = logging.getLogger(__name__)


def _as_utc(value):
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: PackageRow) -> PackageRecord:
    return PackageRecord(
        id=row.id,
        type=PackageType(row.package_type),
        file=StoredFile(
            filename=row.filename,
            mime_type=row.mime_type,
            size=row.size,
            data=row.data,
            checksum=row.checksum,
        ),
        metadata=row.metadata_json,
        uploaded_at=_as_utc(row.uploaded_at),
        expires_at=_as_utc(row.expires_at),
    )


class DatabaseStorage(StorageProvider):
    def __init__(
        self,
        database_url: str,
        ttl_seconds: Optional[int] = None,
        echo: bool = False,
    ):
        super().__init__(ttl_seconds)
        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo)
        self._sessions = create_session_factory(self.engine)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database storage ready")

    async def close(self) -> None:
        await self.engine.dispose()

    async def store(self, payload: PackageInput) -> PackageRecord:
        record = self._build_record(payload)
        try:
            async with session_scope(self._sessions) as session:
                await PackageRepository(session).create(
                    package_id=record.id,
                    package_type=record.type.value,
                    filename=record.file.filename,
                    mime_type=record.file.mime_type,
                    data=record.file.data,
                    checksum=record.file.checksum,
                    metadata=record.metadata,
                    uploaded_at=record.uploaded_at,
                    expires_at=record.expires_at,
                )
        except PackageConflictError as e:
            raise StorageError(str(e))
        except SQLAlchemyError as e:
            logger.error(f"Failed to store package {record.id}: {e}")
            raise StorageError(f"Failed to store package {record.id}")
        return record

    async def get(self, package_id: str) -> Optional[PackageRecord]:
        async with session_scope(self._sessions) as session:
            repo = PackageRepository(session)
            try:
                row = await repo.get(package_id)
            except PackageNotFoundError:
                return None
            record = _to_record(row)
            if record.is_expired():
                await repo.delete_record(package_id)
                return None
            return record

    async def delete(self, package_id: str) -> bool:
        async with session_scope(self._sessions) as session:
            try:
                await PackageRepository(session).delete_record(package_id)
            except PackageNotFoundError:
                return False
        return True

    async def list(self) -> List[PackageRecord]:
        async with session_scope(self._sessions) as session:
            repo = PackageRepository(session)
            purged = await repo.delete_expired(utcnow())
            if purged:
                logger.info("Purged %d expired packages", purged)
            rows = await repo.list()
            return [_to_record(row) for row in rows]

    async def clear(self) -> None:
        async with session_scope(self._sessions) as session:
            await PackageRepository(session).delete_all()

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("Database ping failed: %s", e)
            return False
        return True
