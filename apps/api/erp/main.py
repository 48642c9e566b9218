"""FastAPI application entry point."""
import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from erp.core.config import settings
from erp.core.exceptions import ErpError
from erp.core.redis_client import get_redis_url, reset_clients
from erp.core.structured_logging import build_log_context
from erp.db.session import engine

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from erp.core.rate_limit import limiter


# ============================================================================
# Lifespan (cross-worker event relay)
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    relay_task = None
    if get_redis_url():
        from erp.core.event_relay import run_relay

        relay_task = asyncio.create_task(run_relay())
    try:
        yield
    finally:
        if relay_task is not None:
            relay_task.cancel()
            try:
                await relay_task
            except asyncio.CancelledError:
                pass
        reset_clients()


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="ERP API",
    description="Claims and leads workflow API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Request logging
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an X-Request-ID and log one line per request."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    route = request.scope.get("route")
    logger.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra=build_log_context(
            user_id=getattr(request.state, "user_id", None),
            role=getattr(request.state, "role", None),
            request_id=request_id,
            route=getattr(route, "path", None),
            method=request.method,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - started) * 1000,
        ),
    )
    return response


# ============================================================================
# Error handling
# ============================================================================

@app.exception_handler(ErpError)
async def erp_error_handler(request: Request, exc: ErpError):
    """Render domain errors as {"error": kind, "detail": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Store errors are logged in full but never leak to the caller."""
    logger.exception(
        "Unhandled database error",
        extra=build_log_context(
            request_id=getattr(request.state, "request_id", None),
            method=request.method,
        ),
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Internal server error"},
    )


# ============================================================================
# Routers
# ============================================================================

from erp.routers import auth, claims, leads, users
from erp.routers import websocket as ws_router

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(claims.router, prefix="/claims", tags=["claims"])
app.include_router(leads.router, prefix="/leads", tags=["leads"])

# WebSocket for real-time claim and lead events
app.include_router(ws_router.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
