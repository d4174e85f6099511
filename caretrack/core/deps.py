"""FastAPI dependencies for storage access."""

from fastapi import Request

from caretrack.core.config import Settings
from caretrack.core.errors import StorageError
from caretrack.services.tool_registry import ToolContext
from caretrack.storage.base import StorageProvider


def get_storage(request: Request) -> StorageProvider:
    """
    Storage dependency.

    Returns the backend initialized by the application lifespan.
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise StorageError("Storage is not initialized", "STORAGE_NOT_INITIALIZED")
    return storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tool_context(request: Request) -> ToolContext:
    settings = get_settings(request)
    return ToolContext(storage=get_storage(request), max_backdate_days=settings.MAX_BACKDATE_DAYS)
