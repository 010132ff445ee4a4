"""
Structured JSON Logging Module.

Every record is one JSON object carrying the request's correlation and event
ids plus, while an outage event is being handled, the controller and event
type it concerns.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from contextvars import ContextVar

# Request scope: set by TracingMiddleware
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
event_id_ctx: ContextVar[Optional[str]] = ContextVar("event_id", default=None)

# Outage event scope: set by the ingestion endpoint
controller_id_ctx: ContextVar[Optional[str]] = ContextVar("controller_id", default=None)
event_type_ctx: ContextVar[Optional[str]] = ContextVar("event_type", default=None)

SERVICE_NAME = "outage-aggregator"

_CONTEXT_FIELDS: Tuple[Tuple[str, ContextVar], ...] = (
    ("correlation_id", correlation_id_ctx),
    ("event_id", event_id_ctx),
    ("controller_id", controller_id_ctx),
    ("event_type", event_type_ctx),
)


class JSONFormatter(logging.Formatter):
    """
    Formatter that dumps records as JSON.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
            "service": SERVICE_NAME,
        }

        for field, ctx in _CONTEXT_FIELDS:
            value = ctx.get()
            if value:
                log_data[field] = value

        # Explicit extra_data wins over context
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def bind_outage_context(controller_id: str, event_type: str) -> None:
    """Tag subsequent log lines in this task with the outage event's key."""
    controller_id_ctx.set(controller_id)
    event_type_ctx.set(event_type)


def setup_logging(level: str = "INFO"):
    """
    Configures the root logger to use JSON formatting.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    # TracingMiddleware logs requests
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("httpx").setLevel("WARNING")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
