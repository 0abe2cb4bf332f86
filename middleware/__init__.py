"""Middleware package for FastAPI backend."""

from .rate_limiter import (
    limiter,
    setup_rate_limiting,
    limit_preview,
    limit_admin,
    limit_report,
    limit_health,
    RATE_LIMITS,
)

__all__ = [
    "limiter",
    "setup_rate_limiting",
    "limit_preview",
    "limit_admin",
    "limit_report",
    "limit_health",
    "RATE_LIMITS",
]
