import asyncio

from recordstore import config
from recordstore.adapters.documents.memory import MemoryDocumentStore
from recordstore.adapters.persistence.document_store import DocumentStorePersistenceProvider
from recordstore.application.services import RecordService
from recordstore.domain.records import PersistenceRecord, ValidationError
from recordstore.infrastructure.logging import get_logger

logger = get_logger(__name__)


async def run() -> None:
    components = config.build_components()
    store: MemoryDocumentStore = components["store"]
    persistence: DocumentStorePersistenceProvider = components["persistence"]
    record_service: RecordService = components["record_service"]

    await record_service.add("sessions", "user-1", "token-a", ttl_seconds=60)
    await record_service.add("sessions", "user-1", "token-b")
    await record_service.add("sessions", "user-1", "token-a")
    logger.info("record_values", values=await record_service.values("sessions", "user-1"))

    def reorder(record: PersistenceRecord) -> PersistenceRecord:
        return PersistenceRecord(u=list(reversed(record.u)), expire_at=record.expire_at)

    writes_before = store.write_count
    await persistence.update_and_get("sessions", "user-1", reorder)
    logger.info("reorder_writes", writes=store.write_count - writes_before)

    await store.collection("sessions").document("broken").set({"u": "not-a-list"})
    try:
        await persistence.get("sessions", "broken")
    except ValidationError as exc:
        logger.error("record_validation_failed", error=str(exc))

    logger.info("expired_documents_purged", removed=store.purge_expired())


if __name__ == "__main__":
    asyncio.run(run())
