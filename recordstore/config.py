import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import tomllib

from .adapters.documents.memory import MemoryDocumentStore
from .adapters.persistence.document_store import DocumentStorePersistenceProvider
from .adapters.timestamp.clocks import StoreTimestampProvider
from .application.services import RecordService
from .infrastructure.logging import debug_logger_fn, get_logger
from .ports.document_store import DocumentStore
from .ports.timestamp import TimestampProvider

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class StoreSettings:
    backend: str
    debug: bool
    native_expiry: bool


@dataclass
class RecordSettings:
    default_ttl_seconds: int


@dataclass
class Settings:
    store: StoreSettings
    records: RecordSettings


def load_settings(settings_path: Path = Path("config/settings.toml")) -> Settings:
    """Load configuration from environment with optional config file defaults."""

    file_settings = _load_file_settings(settings_path)

    return Settings(
        store=StoreSettings(
            backend=_config_value("RECORDSTORE_BACKEND", file_settings, "store", "backend", "memory"),
            debug=_config_value("RECORDSTORE_DEBUG", file_settings, "store", "debug", "false").lower() in _TRUTHY,
            native_expiry=_config_value(
                "RECORDSTORE_EXPIRY_HOOK", file_settings, "store", "native_expiry", "true"
            ).lower()
            in _TRUTHY,
        ),
        records=RecordSettings(
            default_ttl_seconds=int(
                _config_value(
                    "RECORDSTORE_DEFAULT_TTL_SECONDS", file_settings, "records", "default_ttl_seconds", "0"
                )
            ),
        ),
    )


def _load_file_settings(settings_path: Path) -> Dict[str, Any]:
    if not settings_path.exists():
        return {}

    with settings_path.open("rb") as settings_file:
        return tomllib.load(settings_file)


def _config_value(
    env_key: str, settings: Dict[str, Any], section: str, key: str, default: str
) -> str:
    if env_key in os.environ:
        return os.environ[env_key]

    section_data = settings.get(section, {})
    return str(section_data.get(key, default))


def build_store(settings: Settings) -> DocumentStore:
    if settings.store.backend == "memory":
        return MemoryDocumentStore()
    raise ValueError(f"Unknown store backend: {settings.store.backend}")


def build_components(settings: Optional[Settings] = None) -> dict:
    """Construct the store, persistence provider and services for wiring in main.py."""

    settings = settings or load_settings()
    store = build_store(settings)
    persistence = DocumentStorePersistenceProvider(store=store)
    if settings.store.debug:
        persistence.set_debug_fn(debug_logger_fn(get_logger("recordstore.persistence")))
    if settings.store.native_expiry:
        persistence.set_create_expire_at_from_millis(store.create_expire_at_from_millis)
    timestamps: TimestampProvider = StoreTimestampProvider(store)
    record_service = RecordService(
        persistence=persistence,
        timestamps=timestamps,
        default_ttl_seconds=settings.records.default_ttl_seconds,
    )
    return {
        "settings": settings,
        "store": store,
        "persistence": persistence,
        "timestamps": timestamps,
        "record_service": record_service,
    }
