"""Main FastAPI application."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ledger_engine.settings import settings
from ledger_engine.api.delivery import router as delivery_router
from ledger_engine.api.health import router as health_router
from ledger_engine.api.notifications import router as notifications_router
from ledger_engine.api.offers import router as offers_router
from ledger_engine.api.rewards import router as rewards_router
from ledger_engine.api.service_sharing import router as service_sharing_router
from ledger_engine.domain.common.errors import (
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ledger_engine.infra.db.base import Base, engine
# Import all models to ensure they're registered with Base
from ledger_engine.infra.db.models import (  # noqa: F401
    ProductModel,
    UserProfileModel,
    TransactionModel,
    DeliveryTokenModel,
    LedgerEntryModel,
    ServiceOfferModel,
    ServiceRequestModel,
    NotificationModel,
)
from ledger_engine.infra.messaging.redis_bus import redis_bus

# Configure logging
logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        # Database might not be ready yet; /health/ready reports it
        logger.warning("Could not connect to database during startup: %s", e)

    if settings.notifications_publish_enabled:
        try:
            await redis_bus.connect()
            logger.info("Publishing notification events on Redis channel %s", settings.notifications_channel)
        except Exception as e:
            logger.warning("Could not connect to Redis during startup: %s", e)

    yield

    # Shutdown
    await redis_bus.disconnect()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with status and duration."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        logger.info(
            "%s %s - %d (%.3fs) user=%s",
            request.method,
            request.url.path,
            response.status_code,
            process_time,
            request.headers.get("x-user-id", "-"),
        )
        return response


# Add logging middleware AFTER CORS (CORS must be first)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log request validation errors and return them as 422."""
    errors = exc.errors()
    logger.warning("Validation error on %s %s: %d problem(s)", request.method, request.url.path, len(errors))
    return JSONResponse(
        status_code=422,
        content={"error_code": "request_validation_error", "message": "Invalid request", "detail": errors},
    )


# Domain error handlers: map domain exceptions to correct HTTP status
def _error_body(exc: DomainError) -> dict:
    return {"error_code": exc.error_code, "message": getattr(exc, "message", None) or str(exc)}


@app.exception_handler(NotFoundError)
async def domain_not_found_handler(request: Request, exc: NotFoundError):
    """Return 404 when a resource is not found."""
    return JSONResponse(status_code=404, content=_error_body(exc))


@app.exception_handler(AuthorizationError)
async def domain_authorization_handler(request: Request, exc: AuthorizationError):
    """Return 403 when the caller may not act on the resource."""
    return JSONResponse(status_code=403, content=_error_body(exc))


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError):
    """Return 422 for domain validation errors."""
    return JSONResponse(status_code=422, content=_error_body(exc))


@app.exception_handler(ConflictError)
async def domain_conflict_handler(request: Request, exc: ConflictError):
    """Return 409 for conflict errors (reserved, used, expired, lost races)."""
    return JSONResponse(status_code=409, content=_error_body(exc))


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.error("Unmapped domain error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content=_error_body(exc))


# Health / readiness at the root, API routes under /v1
app.include_router(health_router)
app.include_router(offers_router, prefix=settings.api_v1_prefix)
app.include_router(delivery_router, prefix=settings.api_v1_prefix)
app.include_router(service_sharing_router, prefix=settings.api_v1_prefix)
app.include_router(rewards_router, prefix=settings.api_v1_prefix)
app.include_router(notifications_router, prefix=settings.api_v1_prefix)
