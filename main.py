"""
Field Service Costing - FastAPI Backend

This is the main entry point for the Python backend that handles:
- Tariff resolution for requested services
- Billable quantity calculation (hours, inspections, interventions)
- Cost previews for the service request forms
- Accounting reconciliation and missing-tariff detection
"""

from dotenv import load_dotenv

# Load environment variables FIRST - before importing modules that need them
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import os
import logging

from api.costing import router as costing_router
from db.database import init_connection_pool, close_connection_pool, health_check as db_health_check
from middleware.rate_limiter import setup_rate_limiting, limiter, limit_health
from services.costing import get_cost_compositor, get_tariff_store

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: open the database pool; without it every tariff fetch degrades to "no match"
    try:
        init_connection_pool()
    except Exception as e:
        logger.warning(f"Database pool not initialized: {e}")
    # Read costing config once; bad values are logged and defaulted
    store = get_tariff_store()
    get_cost_compositor()
    logger.info(f"Costing engine ready (tariff cache TTL {store.ttl_seconds}s)")
    yield
    close_connection_pool()


app = FastAPI(
    title="Field Service Costing API",
    description="Tariff resolution and billable quantity calculation for field services",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Setup rate limiting (before other middleware)
setup_rate_limiting(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
        ).split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(costing_router)


@app.get("/", response_model=Dict[str, str])
@limiter.limit("100/minute")
async def root(request: Request) -> Dict[str, str]:
    """API name, version and documentation links."""
    return {
        "service": "Field Service Costing API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "status": "running",
    }


@app.get("/health", response_model=Dict[str, str])
@limit_health
async def health_check(request: Request) -> Dict[str, str]:
    """
    Health check endpoint for monitoring and load balancers.

    The service stays healthy without a database; tariffs then resolve to
    no match, which is reported through the database field.
    """
    return {
        "status": "healthy",
        "service": "field-service-costing-backend",
        "version": "1.0.0",
        "database": "connected" if db_health_check() else "unavailable",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info",
    )
