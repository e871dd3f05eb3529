"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The storage backend (a Database pool, or the in-memory store) is
built here once and parked on app.state; the lifespan only logs start-up
and disposes the pool on shutdown. Middleware, CORS, error handlers and
routers are all registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from inkpress import __version__
from inkpress.api import api_router
from inkpress.config import Settings, settings as default_settings
from inkpress.db.engine import Database
from inkpress.errors import ErrorKind, InkpressError
from inkpress.logging import configure_logging
from inkpress.middleware.request_id import RequestIdMiddleware
from inkpress.middleware.security import SecurityHeadersMiddleware
from inkpress.repositories.memory import MemoryStore
from inkpress.services.notifier import LogResetNotifier

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    app_settings: Settings = app.state.settings
    logger.info(
        "inkpress.starting",
        version=__version__,
        environment=app_settings.environment,
        storage=app_settings.storage,
        port=app_settings.port,
    )

    yield

    logger.info("inkpress.shutdown")
    if app.state.database is not None:
        await app.state.database.dispose()


# ─── Error rendering ─────────────────────────────────────


def _error_response(
    request: Request, kind: ErrorKind, status_code: int, message: str, detail=None
) -> JSONResponse:
    """Render the fixed error envelope and write the one log entry for it."""
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "error.handled",
        kind=kind.value,
        status=status_code,
        path=request.url.path,
        detail=detail,
    )

    body = {"message": message}
    if not request.app.state.settings.is_production:
        body["kind"] = kind.value
        if detail is not None:
            body["detail"] = detail

    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def handle_inkpress_error(request: Request, exc: InkpressError) -> JSONResponse:
    return _error_response(request, exc.kind, exc.status_code, exc.message, exc.detail)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    err = InkpressError(ErrorKind.VALIDATION_FAILED)
    detail = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()
    ]
    return _error_response(request, err.kind, err.status_code, err.message, detail)


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    err = InkpressError(ErrorKind.PERSISTENCE_FAILURE)
    return _error_response(request, err.kind, err.status_code, err.message, str(exc))


# ─── Factory ─────────────────────────────────────────────


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app_settings = app_settings or default_settings
    configure_logging(app_settings.log_level, json_output=app_settings.log_json)

    app = FastAPI(
        title="Inkpress",
        description="Blog backend — authentication, sessions and authorization",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.reset_notifier = LogResetNotifier()
    if app_settings.storage == "memory":
        app.state.database = None
        app.state.memory_store = MemoryStore()
    else:
        app.state.database = Database.from_settings(app_settings)
        app.state.memory_store = None

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(InkpressError, handle_inkpress_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: inkpress.main:app)
app = create_app()
