"""Contract of the backing document database consumed by the persistence adapters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional


@dataclass(frozen=True)
class DocumentSnapshot:
    exists: bool
    _data: Optional[Dict[str, Any]] = None

    def data(self) -> Optional[Dict[str, Any]]:
        return self._data


class DocumentReference(ABC):
    @abstractmethod
    async def get(self) -> DocumentSnapshot:
        raise NotImplementedError

    @abstractmethod
    async def set(self, data: Dict[str, Any]) -> None:
        """Overwrite the whole document."""
        raise NotImplementedError


class CollectionReference(ABC):
    @abstractmethod
    def document(self, name: str) -> DocumentReference:
        raise NotImplementedError


class DocumentStore(ABC):
    """Transactional keyed document database."""

    @abstractmethod
    def collection(self, name: str) -> CollectionReference:
        raise NotImplementedError

    @abstractmethod
    async def run_transaction(self, fn: Callable[[], Awaitable[None]]) -> None:
        """Run fn with transactional isolation, retrying per the store's own policy."""
        raise NotImplementedError

    @abstractmethod
    def server_time_seconds(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def create_expire_at_from_millis(self, millis: int) -> Any:
        """Convert epoch millis into the store's native TTL field value."""
        raise NotImplementedError
