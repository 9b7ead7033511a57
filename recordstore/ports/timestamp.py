from abc import ABC, abstractmethod


class TimestampProvider(ABC):
    """Injectable source of the current time in whole seconds since epoch."""

    @abstractmethod
    def get_timestamp_seconds(self) -> int:
        raise NotImplementedError
