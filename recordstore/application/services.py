from typing import Optional, Tuple

from ..domain.records import PersistenceRecord, has_record_changed
from ..ports.persistence import PersistenceProvider
from ..ports.timestamp import TimestampProvider


class RecordService:
    """Adds, removes and reads record values, applying expiry from the injected clock."""

    def __init__(
        self, persistence: PersistenceProvider, timestamps: TimestampProvider, default_ttl_seconds: int = 0
    ) -> None:
        self.persistence = persistence
        self.timestamps = timestamps
        self.default_ttl_seconds = default_ttl_seconds

    async def add(
        self, collection_name: str, record_name: str, value: str, ttl_seconds: Optional[int] = None
    ) -> PersistenceRecord:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds

        def updater(record: PersistenceRecord) -> PersistenceRecord:
            current = PersistenceRecord.empty() if self.is_expired(record) else record
            if value in current.u:
                values = list(current.u)
            else:
                values = list(current.u) + [value]
            expire_at = current.expire_at
            if ttl:
                expire_at = self.timestamps.get_timestamp_seconds() + ttl
            candidate = PersistenceRecord(u=values, expire_at=expire_at)
            # Unchanged values are not written, so report what is actually stored.
            if not has_record_changed(record, candidate):
                return record
            return candidate

        return await self.persistence.update_and_get(collection_name, record_name, updater)

    async def remove(self, collection_name: str, record_name: str, value: str) -> PersistenceRecord:
        def updater(record: PersistenceRecord) -> PersistenceRecord:
            return PersistenceRecord(u=[v for v in record.u if v != value], expire_at=record.expire_at)

        return await self.persistence.update_and_get(collection_name, record_name, updater)

    async def values(self, collection_name: str, record_name: str) -> Tuple[str, ...]:
        record = await self.persistence.get(collection_name, record_name)
        if self.is_expired(record):
            return ()
        return tuple(record.u)

    def is_expired(self, record: PersistenceRecord) -> bool:
        return record.expire_at is not None and record.expire_at <= self.timestamps.get_timestamp_seconds()
