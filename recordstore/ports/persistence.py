from abc import ABC, abstractmethod
from typing import Callable

from ..domain.records import PersistenceRecord

RecordUpdater = Callable[[PersistenceRecord], PersistenceRecord]


class RecordUpdateError(RuntimeError):
    """Raised when an update transaction finishes without producing a record."""


class PersistenceProvider(ABC):
    """Abstract keyed record store with an atomic read-modify-write primitive."""

    @abstractmethod
    async def get(self, collection_name: str, record_name: str) -> PersistenceRecord:
        raise NotImplementedError

    @abstractmethod
    async def update_and_get(
        self, collection_name: str, record_name: str, updater_fn: RecordUpdater
    ) -> PersistenceRecord:
        raise NotImplementedError
