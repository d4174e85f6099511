"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from caretrack.core.config import Settings, settings as default_settings
from caretrack.core.errors import (
    AppError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from caretrack.core.structured_logging import build_log_context, configure_logging
from caretrack.storage import StorageProvider, create_storage

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES: list[tuple[type[AppError], int]] = [
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 503),
]


def status_code_for(exc: AppError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render typed failures as {"error": {code, message, field?}}."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning(
            "Storage failure",
            extra=build_log_context(code=exc.code, operation=request.url.path),
        )
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra=build_log_context(operation=request.url.path))
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}},
    )


def create_app(settings: Settings | None = None, storage: StorageProvider | None = None) -> FastAPI:
    """
    Build the application.

    When ``storage`` is given it is used as-is (and must already be
    initialized); otherwise the lifespan builds and initializes the backend
    selected by ``settings``.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.storage is None
        if owned:
            app.state.storage = create_storage(settings)
            await app.state.storage.initialize()
            logger.info("Storage initialized", extra=build_log_context(operation=settings.STORAGE_TYPE))
        try:
            yield
        finally:
            if owned:
                await app.state.storage.close()
                app.state.storage = None

    app = FastAPI(
        title="CareTrack API",
        description="Record management for NDIS support providers",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV == "dev" else None,
        redoc_url="/redoc" if settings.ENV == "dev" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    from caretrack.routers import tools
    app.include_router(tools.router, prefix="/tools", tags=["tools"])

    @app.get("/health")
    def health():
        """Health check endpoint."""
        ready = app.state.storage is not None and app.state.storage.initialized
        return {"status": "ok" if ready else "starting", "env": settings.ENV, "version": settings.VERSION}

    return app


configure_logging(default_settings.LOG_LEVEL)
app = create_app()
