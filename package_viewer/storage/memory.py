"""
Volatile in-process storage.

Keeps records in a dict owned by the instance, so data is lost on restart and
is not shared between worker processes. Suited to development and tests.
"""

import logging
from typing import Dict, List, Optional

from .base import PackageInput, PackageRecord, StorageProvider, utcnow

logger = logging.getLogger(__name__)


class InMemoryStorage(StorageProvider):
    def __init__(self, ttl_seconds: Optional[int] = None):
        super().__init__(ttl_seconds)
        self._records: Dict[str, PackageRecord] = {}

    async def store(self, payload: PackageInput) -> PackageRecord:
        record = self._build_record(payload)
        self._records[record.id] = record
        logger.debug("Stored package %s in memory", record.id)
        return record

    async def get(self, package_id: str) -> Optional[PackageRecord]:
        record = self._records.get(package_id)
        if record is None:
            return None
        if record.is_expired():
            del self._records[package_id]
            return None
        return record

    async def delete(self, package_id: str) -> bool:
        return self._records.pop(package_id, None) is not None

    async def list(self) -> List[PackageRecord]:
        self.purge_expired()
        return list(self._records.values())

    async def clear(self) -> None:
        self._records.clear()

    def purge_expired(self) -> int:
        now = utcnow()
        expired = [pid for pid, rec in self._records.items() if rec.is_expired(now)]
        for package_id in expired:
            del self._records[package_id]
        if expired:
            logger.info("Purged %d expired packages", len(expired))
        return len(expired)
