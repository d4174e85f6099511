"""API routers."""

from caretrack.routers.tools import router as tools_router

__all__ = ["tools_router"]
