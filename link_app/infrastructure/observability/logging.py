"""
structlog configuration for the coordination service.

Every entry carries the service name, an ISO timestamp and whatever the
request middleware bound into contextvars (``request_id``, ``user_id``).
Production output is one JSON object per line; local development can switch
to structlog's console renderer.
"""

import logging
import sys

import structlog

SERVICE_NAME = "link-coordination"

_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


def _tag_service(_, __, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog and the stdlib root logger it writes through."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _tag_service,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """One line per HTTP request; 4xx and 5xx at warning."""
    logger = get_logger("link_app.http")
    log = logger.warning if status_code >= 400 else logger.info
    log(
        "HTTP request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
