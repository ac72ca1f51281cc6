"""
Courier Backend
FastAPI application entry point

- Public API: quotes, tracking, geocoder proxy, company settings
- Admin API: shipments, tracking events, carriers, quotes, settings, uploads, emails
- Fixed-window rate limiting per endpoint class; slowapi guards login
- Error sanitization middleware and envelope-shaped error handlers
- Health endpoint with DB ping
- Request size limits
- HTTP client / notification lifecycle management
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.api.routes import (
    admin_carriers,
    admin_emails,
    admin_quotes,
    admin_settings,
    admin_shipments,
    admin_uploads,
    auth,
    mapbox,
    public_settings,
    quotes,
    tracking,
)
from app.core.config import settings
from app.core.database import AsyncSessionLocal, create_all_tables
from app.core.error_handler import ErrorSanitizationMiddleware, register_exception_handlers
from app.core.rate_limit import (
    RedisRateLimitStore,
    limiter,
    rate_limit_exceeded_handler,
    rate_limiter,
)
from app.core.redis_client import close_redis, get_redis
from app.services.email_provider import email_provider
from app.services.geocoding import geocoder
from app.services.notifications import notifier

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: optional table creation, shared rate-limit store.
    Shutdown: drain notifications, close HTTP clients and Redis.
    """
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_all_tables()
        logger.info("Database tables ensured")

    if settings.RATE_LIMIT_STORAGE == "redis":
        client = await get_redis()
        if client is not None:
            rate_limiter.use_store(RedisRateLimitStore(client))
            logger.info("Rate limiter using Redis store")
        else:
            logger.warning("Redis unavailable; rate limiter stays process-local")

    yield

    await notifier.drain(timeout=10.0)
    logger.info("Pending notifications drained")

    await geocoder.close()
    await email_provider.close()
    await close_redis()
    logger.info("HTTP clients closed")


app = FastAPI(
    lifespan=lifespan,
    title=f"{settings.APP_NAME} API",
    description="""
## Courier API

Shipment tracking, quote requests and back-office management for a courier company.

### Authentication
Admin endpoints require a session. Use `/api/auth/login`; the session is set
as an HttpOnly cookie and also returned for use as a Bearer token.

### Rate Limits (per client, per minute)
- Tracking: 30
- Quotes: 10
- Geocoder: 60
- Admin: 200
- Login: 5
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoint"},
        {"name": "auth", "description": "Admin login, logout and session"},
        {"name": "tracking", "description": "Public shipment tracking"},
        {"name": "quotes", "description": "Public quote requests"},
        {"name": "mapbox", "description": "Address autocomplete and geocoding proxy"},
    ],
)

# Login brute-force guard
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

register_exception_handlers(app)


MAX_REQUEST_SIZE = settings.MAX_REQUEST_SIZE_MB * 1024 * 1024


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests that exceed the size limit."""

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > MAX_REQUEST_SIZE:
            logger.warning(
                f"Request size limit exceeded: {content_length} bytes on {request.url.path}"
            )
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": f"Request body exceeds maximum size of {settings.MAX_REQUEST_SIZE_MB}MB",
                },
            )
        return await call_next(request)


app.add_middleware(RequestSizeLimitMiddleware)

# Error sanitization (catches unhandled exceptions)
app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
)

# Public
app.include_router(auth.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")
app.include_router(tracking.router, prefix="/api")
app.include_router(mapbox.router, prefix="/api")
app.include_router(public_settings.router, prefix="/api")
# Admin
app.include_router(admin_shipments.router, prefix="/api")
app.include_router(admin_carriers.router, prefix="/api")
app.include_router(admin_quotes.router, prefix="/api")
app.include_router(admin_settings.router, prefix="/api")
app.include_router(admin_uploads.router, prefix="/api")
app.include_router(admin_emails.router, prefix="/api")


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check with an actual DB ping.
    Returns 503 if database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check DB ping failed: {type(e).__name__}: {e}")
        health_status["database"] = "error"
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
