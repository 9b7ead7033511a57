from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


class ValidationError(ValueError):
    """Raised when a stored document does not match the record shape."""


class StoredRecord(BaseModel):
    """Shape of a record document as held by the backing store."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    u: List[StrictStr]
    # Either plain epoch seconds or the store-native TTL value written by the expiry hook.
    expire_at: Optional[Union[StrictInt, datetime]] = Field(default=None, alias="expireAt")

    @field_validator("expire_at")
    @classmethod
    def _naive_datetimes_are_utc(cls, value: Optional[Union[int, datetime]]) -> Optional[Union[int, datetime]]:
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


@dataclass(frozen=True)
class PersistenceRecord:
    """Set of opaque values stored under a collection/record key, with optional expiry."""

    u: List[str] = field(default_factory=list)
    expire_at: Optional[int] = None

    @classmethod
    def empty(cls) -> "PersistenceRecord":
        return cls(u=[], expire_at=None)

    @classmethod
    def from_document(cls, data: Any) -> "PersistenceRecord":
        """Build a record from a stored document, raising ValidationError on bad shape."""

        stored = validate_document(data)
        return cls(u=list(stored.u), expire_at=expire_at_seconds(stored.expire_at))

    def to_document(self) -> Dict[str, Any]:
        return {"u": list(self.u), "expireAt": self.expire_at}

    def validate(self) -> None:
        validate_document(self.to_document())


def validate_document(data: Any) -> StoredRecord:
    try:
        return StoredRecord.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid persistence record: {exc}") from exc


def expire_at_seconds(value: Any) -> Optional[int]:
    """Whole epoch seconds of an expiry value; naive datetimes are read as UTC."""

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return value


def has_record_changed(old: PersistenceRecord, new: PersistenceRecord) -> bool:
    """Order-insensitive comparison of the values held by two records.

    Lengths are compared first; equal-length records are compared on sorted
    copies, so neither record is mutated. Expiry is not part of the comparison.
    """

    if len(old.u) != len(new.u):
        return True
    return sorted(old.u) != sorted(new.u)
