import asyncio
from datetime import datetime, timezone

import pytest

from recordstore.adapters.documents.memory import MemoryDocumentStore
from recordstore.adapters.persistence.document_store import DocumentStorePersistenceProvider
from recordstore.domain.records import PersistenceRecord, ValidationError
from recordstore.ports.persistence import RecordUpdateError


def _with_values(*values: str, expire_at=None):
    def updater(record: PersistenceRecord) -> PersistenceRecord:
        return PersistenceRecord(u=list(values), expire_at=expire_at)

    return updater


def test_get_absent_key_returns_empty_record():
    async def _run() -> None:
        provider = DocumentStorePersistenceProvider(MemoryDocumentStore())
        record = await provider.get("limits", "missing")
        assert record == PersistenceRecord.empty()

    asyncio.run(_run())


def test_constructor_requires_store():
    with pytest.raises(ValueError):
        DocumentStorePersistenceProvider(None)


def test_get_malformed_document_raises_validation_error():
    async def _run() -> None:
        store = MemoryDocumentStore()
        store.documents["limits"]["bad"] = {"u": [1, 2]}
        provider = DocumentStorePersistenceProvider(store)
        with pytest.raises(ValidationError):
            await provider.get("limits", "bad")
        with pytest.raises(ValidationError):
            await provider.update_and_get("limits", "bad", _with_values("a"))
        assert store.write_count == 0

    asyncio.run(_run())


def test_update_absent_key_writes_record_twice():
    async def _run() -> None:
        store = MemoryDocumentStore()
        provider = DocumentStorePersistenceProvider(store)
        record = await provider.update_and_get("limits", "r1", _with_values("x"))
        assert record.u == ["x"]
        assert store.write_count == 2
        assert store.documents["limits"]["r1"] == {"u": ["x"], "expireAt": None}

    asyncio.run(_run())


def test_update_with_same_set_does_not_write():
    async def _run() -> None:
        store = MemoryDocumentStore()
        store.documents["limits"]["r1"] = {"u": ["a", "b", "c"], "expireAt": None}
        provider = DocumentStorePersistenceProvider(store)
        record = await provider.update_and_get("limits", "r1", _with_values("c", "a", "b"))
        assert record.u == ["c", "a", "b"]
        assert store.write_count == 0
        assert store.documents["limits"]["r1"]["u"] == ["a", "b", "c"]

    asyncio.run(_run())


def test_update_with_length_mismatch_writes():
    async def _run() -> None:
        store = MemoryDocumentStore()
        store.documents["limits"]["r1"] = {"u": ["a"], "expireAt": None}
        provider = DocumentStorePersistenceProvider(store)
        record = await provider.update_and_get("limits", "r1", _with_values("a", "a"))
        assert record.u == ["a", "a"]
        assert store.write_count == 2
        assert (await provider.get("limits", "r1")).u == ["a", "a"]

    asyncio.run(_run())


def test_expiry_hook_populates_native_ttl_field():
    async def _run() -> None:
        store = MemoryDocumentStore()
        provider = DocumentStorePersistenceProvider(store)
        provider.set_create_expire_at_from_millis(store.create_expire_at_from_millis)
        await provider.update_and_get("limits", "r1", _with_values("x", expire_at=2_000_000_000))
        stored = store.documents["limits"]["r1"]
        assert stored["expireAt"] == datetime.fromtimestamp(2_000_000_000, tz=timezone.utc)
        assert (await provider.get("limits", "r1")).expire_at == 2_000_000_000

    asyncio.run(_run())


def test_expiry_hook_receives_milliseconds_only_when_expiry_set():
    async def _run() -> None:
        calls = []

        def hook(millis: int) -> str:
            calls.append(millis)
            return "native"

        store = MemoryDocumentStore()
        provider = DocumentStorePersistenceProvider(store)
        provider.set_create_expire_at_from_millis(hook)
        await provider.update_and_get("limits", "never", _with_values("x"))
        await provider.update_and_get("limits", "later", _with_values("x", expire_at=5))
        assert calls == [5000]
        assert store.documents["limits"]["never"]["expireAt"] is None
        assert store.documents["limits"]["later"]["expireAt"] == "native"

    asyncio.run(_run())


def test_expiry_without_hook_is_cleared_by_second_write():
    async def _run() -> None:
        store = MemoryDocumentStore()
        provider = DocumentStorePersistenceProvider(store)
        await provider.update_and_get("limits", "r1", _with_values("x", expire_at=5))
        assert store.documents["limits"]["r1"] == {"u": ["x"], "expireAt": None}

    asyncio.run(_run())


def test_debug_fn_reports_reads_and_writes():
    async def _run() -> None:
        messages = []
        provider = DocumentStorePersistenceProvider(MemoryDocumentStore(), debug_fn=messages.append)
        await provider.update_and_get("limits", "r1", _with_values("x"))
        assert messages == [
            "Got record from collection=limits, document=r1",
            "Save record collection=limits, document=r1",
        ]

        replaced = []
        provider.set_debug_fn(replaced.append)
        await provider.get("limits", "r1")
        assert replaced == ["Got record from collection=limits, document=r1"]
        assert len(messages) == 2

    asyncio.run(_run())


def test_store_errors_propagate_unchanged():
    class FailingStore(MemoryDocumentStore):
        async def run_transaction(self, fn):
            raise ConnectionError("store unavailable")

    async def _run() -> None:
        provider = DocumentStorePersistenceProvider(FailingStore())
        with pytest.raises(ConnectionError):
            await provider.update_and_get("limits", "r1", _with_values("x"))

    asyncio.run(_run())


def test_transaction_without_result_raises_update_error():
    class SkippingStore(MemoryDocumentStore):
        async def run_transaction(self, fn):
            return None

    async def _run() -> None:
        provider = DocumentStorePersistenceProvider(SkippingStore())
        with pytest.raises(RecordUpdateError):
            await provider.update_and_get("limits", "r1", _with_values("x"))

    asyncio.run(_run())


def test_concurrent_updates_are_serialized():
    async def _run() -> None:
        store = MemoryDocumentStore()
        provider = DocumentStorePersistenceProvider(store)

        def append(value: str):
            def updater(record: PersistenceRecord) -> PersistenceRecord:
                return PersistenceRecord(u=list(record.u) + [value], expire_at=record.expire_at)

            return updater

        await asyncio.gather(*(provider.update_and_get("limits", "r1", append(str(i))) for i in range(10)))
        record = await provider.get("limits", "r1")
        assert sorted(record.u) == sorted(str(i) for i in range(10))

    asyncio.run(_run())


def test_failing_expiry_hook_leaves_no_partial_save():
    async def _run() -> None:
        store = MemoryDocumentStore()
        store.documents["limits"]["r1"] = {"u": ["a"], "expireAt": None}
        provider = DocumentStorePersistenceProvider(store)
        provider.set_create_expire_at_from_millis(store.create_expire_at_from_millis)
        with pytest.raises((ValueError, OverflowError, OSError)):
            await provider.update_and_get("limits", "r1", _with_values("x", expire_at=10**12))
        assert store.documents["limits"]["r1"] == {"u": ["a"], "expireAt": None}
        assert store.write_count == 0
        assert (await provider.get("limits", "r1")).u == ["a"]

    asyncio.run(_run())
