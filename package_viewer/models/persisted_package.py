"""SQLAlchemy ORM models for persisted packages.

Separate from the Pydantic models in package.py which describe parse results
and API payloads. This layer manages persistence concerns only.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, declarative_base
from sqlalchemy import String, DateTime, JSON, Integer, LargeBinary

Base = declarative_base()


class PackageRow(Base):
    __tablename__ = "packages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    package_type: Mapped[str] = mapped_column(String(16), index=True)
    filename: Mapped[str] = mapped_column(String(255))
    mime_type: Mapped[str] = mapped_column(String(100))
    size: Mapped[int] = mapped_column(Integer)
    checksum: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    metadata_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.package_type,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "size": self.size,
            "checksum": self.checksum,
            "uploadedAt": self.uploaded_at.isoformat(),
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }
