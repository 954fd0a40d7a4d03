"""FastAPI application factory for discotrack.

Usage::

    from discotrack.api.app import create_app

    app = create_app(
        change_log=change_log,
        snapshot_store=snapshot_store,
        config=config,
    )

The factory is used by both the production bootstrap (``discotrack.app``)
and unit tests.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from discotrack.api.routes import router
from discotrack.api.schemas import ErrorResponse, HealthResponse
from discotrack.ledger.change_log import ChangeLog
from discotrack.models.config import DiscoTrackConfig
from discotrack.storage.errors import RecordNotFoundError, StorageError
from discotrack.storage.snapshot_store import SnapshotStore

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api"


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def create_app(
    change_log: ChangeLog,
    snapshot_store: SnapshotStore,
    config: DiscoTrackConfig | None = None,
) -> FastAPI:
    """Create and configure the discotrack FastAPI application.

    Args:
        change_log:     ChangeLog the change endpoints read from.
        snapshot_store: SnapshotStore listed by ``/api/status``.
        config:         DiscoTrackConfig.  Supplies the page size cap.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from discotrack import __version__

    config = config or DiscoTrackConfig()

    app = FastAPI(
        title="discotrack",
        summary="Discovery document change tracker",
        version=__version__,
        description=(
            "discotrack polls API discovery documents, diffs each against the "
            "last stored snapshot and serves the resulting change history."
        ),
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.change_log = change_log
    app.state.snapshot_store = snapshot_store
    app.state.config = config
    app.state.max_results = config.api.max_results
    app.state.started_at = time.monotonic()

    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Map Pydantic validation errors to the error envelope."""
        errors = exc.errors()
        detail = ""
        if errors:
            locs = errors[0].get("loc", ())
            field_name = str(locs[-1]) if locs else ""
            detail = f"{field_name}: {errors[0].get('msg', '')}" if field_name else str(errors[0].get("msg", ""))
        return _error(400, "INVALID_REQUEST", detail)

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(_request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error(404, "CHANGE_NOT_FOUND", str(exc))

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
        _log.error(
            "storage_error",
            request_path=str(request.url.path),
            error=str(exc),
            **exc.context(),
        )
        return _error(500, "STORAGE_ERROR", "The change log could not be read.")

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; stack traces are never exposed."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app
