"""Repository layer for package persistence.

Keeps SQLAlchemy queries out of the storage backend so the backend only deals
with converting rows to records.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select

from package_viewer.models.persisted_package import PackageRow


class PackageNotFoundError(Exception):
    """Raised when a package row could not be located."""


class PackageConflictError(Exception):
    """Raised when attempting to create a package with an existing id."""


class PackageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # CREATE -----------------------------------------------------------------
    async def create(
        self,
        package_id: str,
        package_type: str,
        filename: str,
        mime_type: str,
        data: bytes,
        checksum: Optional[str],
        metadata: Optional[dict],
        uploaded_at: datetime,
        expires_at: Optional[datetime],
    ) -> PackageRow:
        existing = await self.session.get(PackageRow, package_id)
        if existing is not None:
            raise PackageConflictError(f"package {package_id} already exists")

        row = PackageRow(
            id=package_id,
            package_type=package_type,
            filename=filename,
            mime_type=mime_type,
            size=len(data),
            checksum=checksum,
            data=data,
            metadata_json=metadata,
            uploaded_at=uploaded_at,
            expires_at=expires_at,
        )
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return row

    # READ -------------------------------------------------------------------
    async def list(self) -> Sequence[PackageRow]:
        result = await self.session.execute(
            select(PackageRow).order_by(PackageRow.uploaded_at)
        )
        return result.scalars().all()

    async def get(self, package_id: str) -> PackageRow:
        row = await self.session.get(PackageRow, package_id)
        if row is None:
            raise PackageNotFoundError
        return row

    # DELETE -----------------------------------------------------------------
    async def delete_record(self, package_id: str) -> None:
        row = await self.get(package_id)
        await self.session.delete(row)
        await self.session.commit()

    async def delete_expired(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(PackageRow).where(
                PackageRow.expires_at.is_not(None), PackageRow.expires_at <= now
            )
        )
        await self.session.commit()
        return result.rowcount or 0

    async def delete_all(self) -> None:
        await self.session.execute(delete(PackageRow))
        await self.session.commit()
