# nosskey/storage/__init__.py

from .provider import RecordStorage
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
import os

from nosskey.constants import DEFAULT_DB_PATH, DEFAULT_STORAGE_KEY
from nosskey.options import StorageOptions


def load_storage_provider(config: dict | None = None) -> RecordStorage:
    """
    Factory resolver for selecting the record storage backend.

    For now:
        - memory (default)
        - sqlite
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("NOSSKEY_STORAGE_PROVIDER", "memory")

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("NOSSKEY_DB_PATH", DEFAULT_DB_PATH)
        return SQLiteStorage(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


def load_storage_options(config: dict | None = None) -> StorageOptions:
    """Storage options with the provider from load_storage_provider and NOSSKEY_STORAGE_KEY."""
    config = config or {}
    return StorageOptions(
        enabled=config.get("enabled", True),
        storage=load_storage_provider(config),
        storage_key=config.get("storage_key") or os.getenv("NOSSKEY_STORAGE_KEY", DEFAULT_STORAGE_KEY),
    )


__all__ = [
    "RecordStorage",
    "InMemoryStorage",
    "SQLiteStorage",
    "load_storage_provider",
    "load_storage_options",
]
