"""
Rate Limiting Middleware for FastAPI.

Per-endpoint limits for the costing API:
- Default: 100 requests/minute
- Cost preview: 120 requests/minute (forms call it on every edit)
- Admin (tariff cache invalidation): 50 requests/minute
- Reconciliation: 20 requests/minute (prices every service in the period)
- Health: 300 requests/minute
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
import os
import logging

logger = logging.getLogger(__name__)

RATE_LIMITS = {
    "default": os.getenv("RATE_LIMIT_DEFAULT", "100/minute"),
    "preview": os.getenv("RATE_LIMIT_PREVIEW", "120/minute"),
    "admin": os.getenv("RATE_LIMIT_ADMIN", "50/minute"),
    "report": os.getenv("RATE_LIMIT_REPORT", "20/minute"),
    "health": os.getenv("RATE_LIMIT_HEALTH", "300/minute"),
}


def get_client_identifier(request: Request) -> str:
    """
    Identify the caller: X-Real-IP, then first X-Forwarded-For hop,
    then the socket address.
    """
    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[RATE_LIMITS["default"]],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Structured 429 response with retry information."""
    logger.warning(
        f"Rate limit exceeded for {get_client_identifier(request)} "
        f"on {request.url.path}"
    )

    retry_after = getattr(exc, 'retry_after', 60)
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down and try again later.",
            "detail": str(exc.detail) if hasattr(exc, 'detail') else "Rate limit exceeded",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """Attach the limiter, its middleware and the 429 handler to the app."""
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    logger.info(
        f"Rate limiting configured: "
        f"default={RATE_LIMITS['default']}, "
        f"preview={RATE_LIMITS['preview']}, "
        f"report={RATE_LIMITS['report']}"
    )


def limit_preview(func):
    """Apply cost preview rate limit."""
    return limiter.limit(RATE_LIMITS["preview"])(func)


def limit_admin(func):
    """Apply admin rate limit (50/minute)."""
    return limiter.limit(RATE_LIMITS["admin"])(func)


def limit_report(func):
    """Apply reconciliation report rate limit (20/minute)."""
    return limiter.limit(RATE_LIMITS["report"])(func)


def limit_health(func):
    """Apply health check rate limit (300/minute)."""
    return limiter.limit(RATE_LIMITS["health"])(func)
