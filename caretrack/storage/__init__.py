"""Storage backends for record collections."""

from caretrack.core.config import Settings
from caretrack.storage.base import StorageProvider, StorageStats
from caretrack.storage.json_storage import JsonStorage
from caretrack.storage.memory_storage import InMemoryStorage
from caretrack.storage.query import QueryOptions


def create_storage(settings: Settings) -> StorageProvider:
    """Build the backend selected by ``STORAGE_TYPE`` (not yet initialized)."""
    if settings.STORAGE_TYPE == "memory":
        return InMemoryStorage()
    return JsonStorage.from_settings(settings)


__all__ = [
    "InMemoryStorage",
    "JsonStorage",
    "QueryOptions",
    "StorageProvider",
    "StorageStats",
    "create_storage",
]
