"""lecturetrack API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lecturetrack.catalog import CourseCache, CourseCatalog
from lecturetrack.config import Settings, get_settings
from lecturetrack.core.context import get_request_id
from lecturetrack.core.database import DocumentStore, InMemoryDocumentStore
from lecturetrack.core.exceptions import LectureTrackError
from lecturetrack.core.logging import configure_structlog, get_logger
from lecturetrack.core.middleware import RequestContextMiddleware
from lecturetrack.health import router as health_router
from lecturetrack.progress import (
    PROGRESS_INDEXED_FIELDS,
    CourseProgressAggregator,
    LectureProgressStore,
)
from lecturetrack.progress.dependencies import handle_progress_error
from lecturetrack.progress.router import router as progress_router
from lecturetrack.transcode import (
    JobStatusClient,
    LecturePlaybackGate,
    TranscodePoller,
)
from lecturetrack.transcode.router import router as transcode_router


logger = get_logger(__name__)


async def _open_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "cassandra":
        from lecturetrack.core.database.cassandra import init_cassandra_store

        return await init_cassandra_store(settings, PROGRESS_INDEXED_FIELDS)
    return InMemoryDocumentStore()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings

    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        store_backend=settings.store_backend,
    )

    store = app.state.document_store
    if store is None:
        store = await _open_store(settings)
        app.state.document_store = store

    catalog = CourseCatalog(
        store,
        CourseCache(
            ttl_seconds=settings.catalog_cache_ttl_seconds,
            max_size=settings.catalog_cache_max_size,
        ),
    )
    aggregator = CourseProgressAggregator(store, catalog)
    progress_store = LectureProgressStore(
        store,
        catalog,
        aggregator,
        completion_threshold=settings.progress_completion_threshold,
    )
    status_client = JobStatusClient(
        settings.transcode_status_api_base_url,
        settings.video_public_base_url,
        timeout_seconds=settings.transcode_request_timeout_seconds,
        transport=app.state.status_transport,
    )
    poller = TranscodePoller(
        catalog,
        status_client,
        max_attempts=settings.transcode_poll_max_attempts,
        interval_seconds=settings.transcode_poll_interval_seconds,
    )

    app.state.catalog = catalog
    app.state.progress_aggregator = aggregator
    app.state.progress_store = progress_store
    app.state.transcode_poller = poller
    app.state.playback_gate = LecturePlaybackGate(catalog, poller)
    logger.info("services_initialized")

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await poller.shutdown()
    await status_client.aclose()
    if settings.store_backend == "cassandra":
        from lecturetrack.core.database.cassandra import shutdown_cassandra

        await shutdown_cassandra()


def create_app(
    settings: Settings | None = None,
    *,
    store: DocumentStore | None = None,
    status_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment.
        store: Pre-built document store (skips backend connection).
        status_transport: httpx transport for the job status client.
    """
    settings = settings or get_settings()
    configure_structlog(settings, file_output=not settings.is_testing)

    # debug=False keeps stack traces out of responses; handlers below log them
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Learning progress and video transcode tracking API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.document_store = store
    app.state.status_transport = status_transport

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_response(
        request: Request, status_code: int, message: str
    ) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": message,
                "status_code": status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return _error_response(request, exc.status_code, message)

    @app.exception_handler(LectureTrackError)
    async def domain_exception_handler(
        request: Request, exc: LectureTrackError
    ) -> ORJSONResponse:
        """Map domain errors that escaped a route to their HTTP status."""
        http_exc = handle_progress_error(exc)
        logger.warning(
            "domain_exception",
            code=exc.code,
            error=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return _error_response(request, http_exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )

    app.include_router(health_router)
    app.include_router(progress_router)
    app.include_router(transcode_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "lecturetrack API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app
