"""Expose the OceanRe accounting API and map kernel errors to HTTP responses."""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from oceanre_config import Settings
from oceanre_kernel.db.engine import create_tables, get_engine
from oceanre_kernel.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    OceanReError,
    ValidationError,
)
from oceanre_kernel.logging_config import LogContext, configure_logging, get_logger

from .database import ensure_engine, get_settings
from .routers import (
    accounts_router,
    journal_entries_router,
    journal_entry_lines_router,
    periods_router,
)
from .security import ACTOR_ID_HEADER, ACTOR_ROLE_HEADER

LOGGER = get_logger("api")

REQUEST_ID_HEADER = "X-Request-Id"

# Most specific category first
_STATUS_BY_ERROR: tuple[tuple[type[OceanReError], int], ...] = (
    (ValidationError, 422),  # Unprocessable Content
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
)


def status_for_error(exc: OceanReError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_kernel_error(request: Request, exc: OceanReError) -> JSONResponse:
    status_code = status_for_error(exc)
    LOGGER.info(
        "request_rejected",
        extra={
            "path": request.url.path,
            "status_code": status_code,
            "error_code": exc.code,
        },
    )
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "message": str(exc), "detail": exc.detail},
    )


def ensure_database_is_ready(settings: Settings) -> None:
    """Create the schema when the service starts."""

    ensure_engine(settings)
    create_tables(get_engine())
    LOGGER.info("database_ready")


def create_app(settings: Settings | None = None, init_database: bool = True) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to serve with; the active settings by default.
        init_database: Create the schema on startup.
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        active = settings or get_settings()
        configure_logging(level=active.log_level)
        if init_database:
            ensure_database_is_ready(active)
        yield

    app = FastAPI(title="OceanRe Accounting API", lifespan=lifespan)

    if settings is not None:
        app.dependency_overrides[get_settings] = lambda: settings

    app.add_exception_handler(OceanReError, handle_kernel_error)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        with LogContext.bind(
            request_id=request_id,
            correlation_id=request_id,
            actor_id=request.headers.get(ACTOR_ID_HEADER),
            actor_role=request.headers.get(ACTOR_ROLE_HEADER),
        ):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(accounts_router, prefix="/accounting/accounts", tags=["accounts"])
    app.include_router(periods_router, prefix="/accounting/periods", tags=["periods"])
    app.include_router(
        journal_entries_router,
        prefix="/accounting/journal-entries",
        tags=["journal-entries"],
    )
    app.include_router(
        journal_entry_lines_router,
        prefix="/accounting/journal-entry-lines",
        tags=["journal-entry-lines"],
    )

    return app


app = create_app()
