"""
Request tracing for the outage API.

Assigns a correlation id (taken from X-Correlation-ID when a controller
retries with one) and a per-request event id, echoes both as response
headers and logs one line per request. Health and readiness probes are
logged at DEBUG.
"""
import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from backend.app.core.logging import correlation_id_ctx, event_id_ctx

logger = logging.getLogger(__name__)

PROBE_PATH_SUFFIXES = ("/health", "/ready")


def _request_fields(request: Request, started: float) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        "client_ip": request.client.host if request.client else None,
    }


class TracingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        event_id = str(uuid.uuid4())
        correlation_id_ctx.set(correlation_id)
        event_id_ctx.set(event_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            fields = _request_fields(request, started)
            fields.update(status_code=500, error=str(e))
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={"extra_data": fields},
                exc_info=True,
            )
            raise

        fields = _request_fields(request, started)
        fields["status_code"] = response.status_code
        level = logging.DEBUG if request.url.path.endswith(PROBE_PATH_SUFFIXES) else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"extra_data": fields},
        )

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Event-ID"] = event_id
        return response
