from typing import Any, Callable, Optional

from ...domain.records import PersistenceRecord, has_record_changed
from ...infrastructure.logging import get_logger
from ...ports.document_store import DocumentReference, DocumentStore
from ...ports.persistence import PersistenceProvider, RecordUpdateError, RecordUpdater

logger = get_logger(__name__)


def _noop_debug(msg: str) -> None:
    pass


class DocumentStorePersistenceProvider(PersistenceProvider):
    """Persistence provider over any transactional document store."""

    def __init__(self, store: DocumentStore, debug_fn: Callable[[str], None] = _noop_debug) -> None:
        if store is None:
            raise ValueError("store must be provided")
        self.store = store
        self._debug_fn = debug_fn
        self._create_expire_at_from_millis: Optional[Callable[[int], Any]] = None

    async def update_and_get(
        self, collection_name: str, record_name: str, updater_fn: RecordUpdater
    ) -> PersistenceRecord:
        result: Optional[PersistenceRecord] = None

        async def transaction() -> None:
            nonlocal result
            record = await self._get_record(collection_name, record_name)
            updated_record = updater_fn(record)
            if has_record_changed(record, updated_record):
                await self._save_record(collection_name, record_name, updated_record)
            result = updated_record

        await self.store.run_transaction(transaction)
        if result is None:
            logger.error("record_update_failed", collection=collection_name, document=record_name)
            raise RecordUpdateError(f"Record {collection_name}/{record_name} could not be updated")
        return result

    async def get(self, collection_name: str, record_name: str) -> PersistenceRecord:
        return await self._get_record(collection_name, record_name)

    def set_debug_fn(self, debug_fn: Callable[[str], None]) -> None:
        self._debug_fn = debug_fn

    def set_create_expire_at_from_millis(self, create_expire_at_from_millis: Callable[[int], Any]) -> None:
        self._create_expire_at_from_millis = create_expire_at_from_millis

    async def _get_record(self, collection_name: str, record_name: str) -> PersistenceRecord:
        snapshot = await self._document_ref(collection_name, record_name).get()
        self._debug_fn(f"Got record from collection={collection_name}, document={record_name}")
        if not snapshot.exists:
            return PersistenceRecord.empty()
        return PersistenceRecord.from_document(snapshot.data())

    async def _save_record(self, collection_name: str, record_name: str, record: PersistenceRecord) -> None:
        self._debug_fn(f"Save record collection={collection_name}, document={record_name}")
        document = self._document_ref(collection_name, record_name)
        await document.set(record.to_document())
        # Second write carries the store-native TTL marker in place of the plain integer.
        expire_at = None
        if record.expire_at and self._create_expire_at_from_millis:
            expire_at = self._create_expire_at_from_millis(record.expire_at * 1000)
        await document.set({"u": list(record.u), "expireAt": expire_at})

    def _document_ref(self, collection_name: str, record_name: str) -> DocumentReference:
        return self.store.collection(collection_name).document(record_name)
