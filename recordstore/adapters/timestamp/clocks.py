import time

from ...ports.document_store import DocumentStore
from ...ports.timestamp import TimestampProvider


class StoreTimestampProvider(TimestampProvider):
    """Reads the backing store's server clock so expiry matches server-side TTL enforcement."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get_timestamp_seconds(self) -> int:
        return self.store.server_time_seconds()


class SystemTimestampProvider(TimestampProvider):
    """Local clock using time.time()."""

    def get_timestamp_seconds(self) -> int:
        return int(time.time())


class FixedTimestampProvider(TimestampProvider):
    """Deterministic clock for tests."""

    def __init__(self, value: int) -> None:
        self.value = value

    def get_timestamp_seconds(self) -> int:
        return self.value

    def advance(self, seconds: int) -> None:
        self.value += seconds
