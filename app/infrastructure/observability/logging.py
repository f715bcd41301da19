"""
Structured logging setup for the dialer capacity service.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

# Set by request middleware / job runners so every line carries the caller.
request_user_id: ContextVar[str | None] = ContextVar("request_user_id", default=None)
job_name: ContextVar[str | None] = ContextVar("job_name", default=None)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_trace_context,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _add_trace_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Attach the acting user / job from context when the call site did not."""
    user_id = request_user_id.get()
    if user_id and "user_id" not in event_dict:
        event_dict["user_id"] = user_id
    current_job = job_name.get()
    if current_job and "job" not in event_dict:
        event_dict["job"] = current_job
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_health_check(service: str, healthy: bool, latency_ms: float, error: str = None):
    """Log health check results with consistent fields."""
    logger = get_logger("health")

    log_data = {
        "service": service,
        "healthy": healthy,
        "latency_ms": latency_ms,
    }

    if error:
        log_data["error"] = error

    if healthy:
        logger.info("Health check passed", **log_data)
    else:
        logger.error("Health check failed", **log_data)
