# ruff: noqa: E402
# E402 disabled: load_dotenv() must run before other imports for Sentry DSN

import time
from collections.abc import Awaitable, Callable, Sequence
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import sentry_sdk
from fastapi import FastAPI, Request, Response, status
from fastapi.params import Depends
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from core.correlation import (
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.scheduler import get_scheduler_status, setup_scheduler, shutdown_scheduler
from core.sentry_config import init_sentry
from models.config import settings
from models.exceptions import (
    AuthenticationException,
    DomainException,
    NotFoundException,
    ValidationException,
)
from repositories.database import Base, engine
from routers import security_router

# Expected latest migration revision (update when adding new migrations)
EXPECTED_REVISION = "0001_account_security"

# Initialize Sentry BEFORE app creation
init_sentry()

# Configure logging with Loguru
configure_logging(settings.ENVIRONMENT, file_logging=settings.ENVIRONMENT != "test")


def check_schema_version() -> None:
    """Warn when the database schema is not at the expected migration."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    from repositories.database import SessionLocal

    db = SessionLocal()
    try:
        result = db.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
        row = result.fetchone()
        if row:
            current_revision = row[0]
            if current_revision != EXPECTED_REVISION:
                logger.warning(
                    f"Database schema mismatch! "
                    f"Current: {current_revision}, Expected: {EXPECTED_REVISION}. "
                    f"Run 'alembic upgrade head' to update the database schema."
                )
            else:
                logger.info(f"Database schema version: {current_revision} (up to date)")
        else:
            logger.warning(
                "No alembic_version found. Database may not be initialized with "
                "migrations."
            )
    except SQLAlchemyError as e:
        logger.warning(f"Could not verify schema version: {e}")
    finally:
        db.close()


def _compaction_enabled() -> bool:
    return settings.LOCKOUT_COMPACTION_ENABLED and settings.ENVIRONMENT != "test"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Verify database schema version matches expected migration.
    - Optionally create tables when `AUTO_CREATE_DB` is enabled (development).
    - Start the lockout compaction scheduler when enabled.
    """
    if settings.AUTO_CREATE_DB:
        logger.info(
            "AUTO_CREATE_DB enabled; creating tables via SQLAlchemy create_all()"
        )
        Base.metadata.create_all(bind=engine)
    else:
        logger.info("AUTO_CREATE_DB disabled; skipping automatic create_all()")
        check_schema_version()

    if _compaction_enabled():
        setup_scheduler(settings.LOCKOUT_COMPACTION_INTERVAL_MINUTES)

    try:
        yield
    finally:
        if _compaction_enabled():
            shutdown_scheduler()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Inject correlation ID into request context and Sentry."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request with correlation ID tracking."""
        correlation_id = (
            request.headers.get("X-Correlation-ID") or generate_correlation_id()
        )
        set_correlation_id(correlation_id)

        sentry_sdk.set_tag("correlation_id", correlation_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with performance monitoring."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log timing information."""
        start_time = time.perf_counter()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        if duration > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {settings.SLOW_REQUEST_THRESHOLD}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        return response


def _domain_error_response(
    request: Request,
    exc: DomainException,
    status_code: int,
    label: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Tag Sentry, log, and render a domain exception as JSON."""
    sentry_sdk.set_tag("correlation_id", exc.correlation_id)
    sentry_sdk.set_tag("exception_type", exc.__class__.__name__)

    logger.bind(
        correlation_id=exc.correlation_id,
        exception_type=exc.__class__.__name__,
        path=str(request.url.path),
    ).warning(f"{label}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "correlation_id": exc.correlation_id,
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the centralized exception handlers to an app."""

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch all unhandled exceptions with full Sentry capture."""
        correlation_id = get_correlation_id() or generate_correlation_id()

        sentry_sdk.set_tag("correlation_id", correlation_id)
        sentry_sdk.capture_exception(exc)

        logger.bind(
            correlation_id=correlation_id,
            path=str(request.url.path),
            method=request.method,
        ).exception(f"Unhandled exception: {exc!r}")

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Error interno del servidor",
                "correlation_id": correlation_id,
            },
        )

    @app.exception_handler(NotFoundException)
    async def not_found_exception_handler(
        request: Request, exc: NotFoundException
    ) -> JSONResponse:
        return _domain_error_response(
            request, exc, status.HTTP_404_NOT_FOUND, "Not found"
        )

    @app.exception_handler(ValidationException)
    async def validation_exception_handler(
        request: Request, exc: ValidationException
    ) -> JSONResponse:
        return _domain_error_response(
            request, exc, status.HTTP_422_UNPROCESSABLE_CONTENT, "Validation error"
        )

    @app.exception_handler(AuthenticationException)
    async def authentication_exception_handler(
        request: Request, exc: AuthenticationException
    ) -> JSONResponse:
        # Auth failures are security-relevant, capture in Sentry
        sentry_sdk.capture_exception(exc)
        return _domain_error_response(
            request,
            exc,
            status.HTTP_401_UNAUTHORIZED,
            "Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request, exc: DomainException
    ) -> JSONResponse:
        return _domain_error_response(
            request, exc, status.HTTP_400_BAD_REQUEST, "Domain error"
        )


def create_app(security_dependencies: Sequence[Depends] = ()) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        security_dependencies: Dependencies (e.g. `Depends(require_admin)`)
            applied to every security route. The host application supplies
            authentication and authorization here.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="Parks Account Security API", lifespan=lifespan)

    # Middleware runs in reverse order of registration
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    dependencies = list(security_dependencies)
    app.include_router(security_router.admin_router, dependencies=dependencies)
    app.include_router(security_router.router, dependencies=dependencies)

    @app.get("/api/health")
    def health_check() -> dict:
        """Liveness probe with scheduler status."""
        return {"status": "healthy", "scheduler": get_scheduler_status()}

    return app


# Standalone app for `uvicorn main:app`. Routes carry no auth dependencies here;
# hosts that expose them call create_app() with their own guards.
app = create_app()
