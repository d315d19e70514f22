"""
BudStack Platform - Backend API
Multi-tenant storefronts for medical cannabis dispensaries

Run with:
    uvicorn budstack.main:app --reload

Author: TM3
Date: 2025-11-03
"""
import logging
import time
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# backend/.env, before settings are read
load_dotenv(Path(__file__).resolve().parents[1] / ".env")

from budstack.api import auth, onboarding, store, tenant_admin, super_admin, webhooks, platform
from budstack.core.config import settings
from budstack.core.database import get_db_connection_with_retry, CONNECTION_TIMEOUT
from budstack.core.rate_limit import RateLimitMiddleware

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION
)

app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(onboarding.router, prefix="/api/v1/onboarding", tags=["Onboarding"])
app.include_router(store.router, prefix="/api/v1/store", tags=["Storefront"])
app.include_router(tenant_admin.router, prefix="/api/v1/tenant-admin", tags=["Tenant Admin"])
app.include_router(super_admin.router, prefix="/api/v1/super-admin", tags=["Super Admin"])
app.include_router(webhooks.router, prefix="/api/v1/webhooks", tags=["Payment Webhooks"])
app.include_router(platform.router, prefix="/api/v1/platform-settings", tags=["Platform"])


@app.get("/")
async def root():
    """API status"""
    return {
        "message": "BudStack API",
        "status": "online",
        "version": settings.API_VERSION,
        "description": settings.API_DESCRIPTION
    }


@app.get("/health")
async def health():
    """Liveness plus a database round trip"""
    database = {"status": "connected", "latency_ms": None, "error": None, "connect_timeout_s": CONNECTION_TIMEOUT}

    started = time.perf_counter()
    try:
        conn = get_db_connection_with_retry(max_retries=1)
        conn.close()
        database["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        database.update(status="disconnected", error=str(e))

    return {
        "status": "healthy" if database["status"] == "connected" else "degraded",
        "service": "budstack-api",
        "version": settings.API_VERSION,
        "database": database,
    }


def run():
    import uvicorn
    uvicorn.run("budstack.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.API_DEBUG)


if __name__ == "__main__":
    run()
