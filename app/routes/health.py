# app/routes/health.py
"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.infrastructure.observability.logging import log_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "dialer-capacity"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check covering the database pool and required configuration.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)
        latency_ms = round((time.time() - t0) * 1000, 1)

        checks["database"] = {"ok": is_healthy, "latency_ms": latency_ms}

        if "pool_stats" in db_health:
            pool_stats = db_health["pool_stats"]
            checks["database"].update(
                {
                    "pool_size": pool_stats.get("pool_size", 0),
                    "pool_available": pool_stats.get("pool_available", 0),
                    "pool_utilization_percent": pool_stats.get("pool_utilization_percent", 0),
                    "connection_time_ms": db_health.get("connection_time_ms", 0),
                }
            )

        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]

        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
            if "error_type" in db_health:
                checks["database"]["error_type"] = db_health["error_type"]

        log_health_check("database", is_healthy, latency_ms, db_health.get("error"))
        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 2) Configuration
    config_issues = []
    if not settings.SUPABASE_DB_URL:
        config_issues.append("SUPABASE_DB_URL not set")
    if settings.DIALER_PAGE_SIZE < 1:
        config_issues.append("DIALER_PAGE_SIZE must be positive")
    if settings.DIALER_ID_CHUNK_SIZE < 1:
        config_issues.append("DIALER_ID_CHUNK_SIZE must be positive")

    config_ok = not config_issues
    checks["configuration"] = {
        "ok": config_ok,
        "issues": config_issues or None,
        "environment": settings.environment,
        "dialer": settings.get_dialer_config(),
    }
    overall_ok = overall_ok and config_ok

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    """Detailed database pool health information."""
    return await db_health_check()
