"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smart_city import __version__
from smart_city.api.v1 import router as v1_router
from smart_city.core.config import settings
from smart_city.core.errors import install_exception_handlers
from smart_city.core.rate_limit import RateLimiter, RateLimitMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Smart City API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

install_exception_handlers(app)

if settings.RATE_LIMIT_ENABLED:
    window_seconds = settings.RATE_LIMIT_WINDOW_MINUTES * 60
    app.add_middleware(
        RateLimitMiddleware,
        general=RateLimiter(settings.RATE_LIMIT_MAX, window_seconds),
        strict=RateLimiter(settings.AUTH_RATE_LIMIT_MAX, window_seconds),
        strict_prefix=f"{settings.API_V1_PREFIX}/auth",
    )

# Added last so CORS headers are also set on rate-limited responses.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Retry-After"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

logger.info(
    "Smart City API configured",
    extra={"environment": settings.APP_ENV, "rate_limit": settings.RATE_LIMIT_ENABLED},
)


@app.get("/")
def root() -> dict[str, object]:
    """Root route; minimal payload for discovery."""
    return {
        "success": True,
        "message": "Welcome to the Smart City API",
        "version": __version__,
        "documentation": "/docs",
        "health": f"{settings.API_V1_PREFIX}/health",
    }
