"""
Observability Infrastructure

Structured logging with correlation tracking and the Prometheus metrics
shared by the HTTP middleware and the business services.
"""

import contextvars
import logging
import sys
import uuid
from typing import Any

import structlog
from prometheus_client import Counter, Histogram

from .config import settings

# Context variables for correlation tracking
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="")

# Prometheus metrics
REQUEST_COUNT = Counter(
    "hanmo_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_DURATION = Histogram(
    "hanmo_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
)

RATE_LIMIT_REJECTIONS = Counter(
    "hanmo_rate_limit_rejections_total",
    "Requests rejected by a rate limiter",
    ["limiter"],
)

LOGIN_ATTEMPTS = Counter(
    "hanmo_login_attempts_total",
    "Login attempts by outcome",
    ["outcome"],
)

CREDIT_OPERATIONS = Counter(
    "hanmo_credit_operations_total",
    "Credit balance changes",
    ["operation", "status"],
)

POINT_OPERATIONS = Counter(
    "hanmo_point_operations_total",
    "Point balance changes",
    ["operation", "source"],
)

REDEEM_ATTEMPTS = Counter(
    "hanmo_redeem_attempts_total",
    "Redeem code attempts",
    ["kind", "status"],
)


class CorrelationIdProcessor:
    """Structlog processor to add correlation ID to all log entries."""

    def __call__(
        self, logger: Any, name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        correlation_id = correlation_id_var.get("")
        user_id = user_id_var.get("")

        if correlation_id:
            event_dict["correlation_id"] = correlation_id
        if user_id:
            event_dict["user_id"] = user_id

        return event_dict


def setup_structured_logging() -> None:
    """Configure structured logging with JSON output and correlation tracking."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        CorrelationIdProcessor(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "local")
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if settings.LOG_SQL:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for request tracking."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)
