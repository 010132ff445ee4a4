"""Health check endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status
from sqlalchemy import text

from backend.app.core.config import get_settings

router = APIRouter()

_STARTED_AT = time.monotonic()


@router.get("/health")
async def health_check():
    """Basic liveness check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "environment": get_settings().environment,
    }


@router.get("/ready")
async def readiness_check(request: Request, response: Response):
    """
    Readiness check - verify dependencies are available.
    Fails if the outage store or the active-group cache is down.
    """
    health_status = {
        "status": "ready",
        "checks": {
            "database": "unknown",
            "cache": "unknown",
        }
    }

    try:
        async with request.app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["checks"]["database"] = f"failed: {str(e)}"
        health_status["status"] = "not_ready"

    redis_client = getattr(request.app.state, "redis_client", None)
    try:
        if redis_client is None:
            raise RuntimeError("client not initialised")
        await redis_client.ping()
        health_status["checks"]["cache"] = "ok"
    except Exception as e:
        health_status["checks"]["cache"] = f"failed: {str(e)}"
        health_status["status"] = "not_ready"

    if health_status["status"] != "ready":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status
