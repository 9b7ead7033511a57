import asyncio
import copy
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, DefaultDict, Dict, Optional

from ...domain.records import expire_at_seconds
from ...infrastructure.logging import get_logger
from ...ports.document_store import CollectionReference, DocumentReference, DocumentSnapshot, DocumentStore
from ...ports.timestamp import TimestampProvider
from ..timestamp.clocks import SystemTimestampProvider

logger = get_logger(__name__)

Documents = DefaultDict[str, Dict[str, Dict[str, Any]]]


class MemoryDocumentReference(DocumentReference):
    def __init__(self, store: "MemoryDocumentStore", collection_name: str, name: str) -> None:
        self._store = store
        self.collection_name = collection_name
        self.name = name

    async def get(self) -> DocumentSnapshot:
        await asyncio.sleep(0)
        data = self._store.documents.get(self.collection_name, {}).get(self.name)
        if data is None:
            return DocumentSnapshot(exists=False)
        return DocumentSnapshot(exists=True, _data=copy.deepcopy(data))

    async def set(self, data: Dict[str, Any]) -> None:
        await asyncio.sleep(0)
        self._store.documents[self.collection_name][self.name] = copy.deepcopy(data)
        self._store.write_count += 1


class MemoryCollectionReference(CollectionReference):
    def __init__(self, store: "MemoryDocumentStore", name: str) -> None:
        self._store = store
        self.name = name

    def document(self, name: str) -> MemoryDocumentReference:
        return MemoryDocumentReference(self._store, self.name, name)


class MemoryDocumentStore(DocumentStore):
    """In-process document store with serialized transactions and a TTL sweep."""

    def __init__(self, clock: Optional[TimestampProvider] = None) -> None:
        self.clock = clock or SystemTimestampProvider()
        self.documents: Documents = defaultdict(dict)
        self.write_count = 0
        self._transaction_lock = asyncio.Lock()

    def collection(self, name: str) -> MemoryCollectionReference:
        return MemoryCollectionReference(self, name)

    async def run_transaction(self, fn: Callable[[], Awaitable[None]]) -> None:
        async with self._transaction_lock:
            documents = copy.deepcopy(self.documents)
            write_count = self.write_count
            try:
                await fn()
            except BaseException:
                # Roll back every write made by the failed attempt.
                self.documents = documents
                self.write_count = write_count
                raise

    def server_time_seconds(self) -> int:
        return self.clock.get_timestamp_seconds()

    def create_expire_at_from_millis(self, millis: int) -> datetime:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)

    def purge_expired(self) -> int:
        """Delete documents whose expiry has passed; returns how many were removed."""

        now = self.server_time_seconds()
        removed = 0
        for collection_name, documents in self.documents.items():
            for name in list(documents):
                expire_at = expire_at_seconds(documents[name].get("expireAt"))
                if expire_at is not None and expire_at <= now:
                    del documents[name]
                    removed += 1
                    logger.info("document_expired", collection=collection_name, document=name)
        return removed
