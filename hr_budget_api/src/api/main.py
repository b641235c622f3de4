from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.core.deps import get_tenant_id, parse_tenant_header
from src.core.exceptions import BusinessRuleError, NotFoundError
from src.core.logging import configure_logging, correlation_id_var, tenant_id_var
from src.core.settings import get_app_settings
from src.db.run_migrations import main as run_alembic
from src.db.seed import seed_all
from src.db.session import current_tenant_var, dispose_engine
from src.schemas.common import ErrorInfo, ErrorResponse, MessageResponse, TenantEcho

# Routers
from src.api.routes.auth import current_user_router, router as auth_router
from src.api.routes.notification import router as notification_router
from src.api.routes.pe_management import router as pe_management_router
from src.api.routes.settings import router as settings_router
from src.api.routes.users import router as users_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness and tenant probes."},
    {"name": "Auth", "description": "Authentication, token and current-user endpoints."},
    {"name": "Users", "description": "User administration endpoints."},
    {"name": "Notifications", "description": "Bell notifications for PE movements."},
    {"name": "PE Management", "description": "Movement approval workflow and attachments."},
    {"name": "Settings", "description": "BU/SUP and PE allocation configuration, audit logs."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and tenant_id for logging, data access and error responses.
    Adds 'X-Correlation-ID' to every response.

    A malformed X-Tenant-ID leaves the host context in place; the get_tenant_id
    dependency rejects it with 400 on routes that touch data.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    tenant = request.headers.get("X-Tenant-ID")
    try:
        tenant_uuid = parse_tenant_header(tenant)
    except ValueError:
        tenant_uuid = None

    token_corr = correlation_id_var.set(corr)
    token_tenant = tenant_id_var.set(tenant)
    token_current = current_tenant_var.set(tenant_uuid)
    request.state.correlation_id = corr
    request.state.tenant_id = tenant

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        current_tenant_var.reset(token_current)
        tenant_id_var.reset(token_tenant)
        correlation_id_var.reset(token_corr)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        tenant_id=getattr(request.state, "tenant_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Global handler for HTTPException to produce a standardized error envelope."""
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _build_error_response(request, 404, "not_found", str(exc))


@app.exception_handler(BusinessRuleError)
async def business_rule_handler(request: Request, exc: BusinessRuleError):
    return _build_error_response(request, 400, "business_rule", str(exc))


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    # ctx may carry exception instances that JSON cannot encode
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Global handler for request validation errors with a standard structure."""
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=_jsonable_errors(exc),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler to avoid leaking stack traces and to return a structured error."""
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and seeding on service startup.

    Failures are logged and the service keeps starting; the dev user is only
    seeded when IsDevelopment is true.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so keep it off the server loop
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding (IsDevelopment=%s)...", settings.IsDevelopment)
            await seed_all(is_development=settings.IsDevelopment)
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await dispose_engine()


api = APIRouter(prefix="/api")


# PUBLIC_INTERFACE
@api.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api.get(
    "/health/tenant",
    response_model=TenantEcho,
    summary="Tenant Health Echo",
    description="Echoes the tenant context to verify header handling. No header means the host context.",
    tags=["Health"],
)
async def tenant_health_echo(tenant_id: Optional[UUID] = Depends(get_tenant_id)) -> TenantEcho:
    """Echo the provided tenant ID (or null for the host)."""
    return TenantEcho(tenant_id=tenant_id)


api.include_router(auth_router)
api.include_router(current_user_router)
api.include_router(users_router)
api.include_router(notification_router)
api.include_router(pe_management_router)
api.include_router(settings_router)

app.include_router(api)
