"""
Structured logging configuration using structlog.

Log entries look like:
{
    "ts": "2026-10-19T08:15:00.123456Z",
    "level": "info",
    "service": "routeflow",
    "correlation_id": "uuid-v4",
    "event": "rules.evaluated",
    "module": "routeflow.rules.engine",
    "func_name": "evaluate",
    "lineno": 88,
    ...additional context...
}
"""
import logging
from typing import Any

import structlog

SERVICE_NAME = "routeflow"


def service_name_adder(service_name: str):
    """Build a processor stamping every entry with the service name."""

    def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict["service"] = service_name
        return event_dict

    return add_service_name


def setup_logging(json_output: bool = True, service_name: str = SERVICE_NAME, level: str = "INFO"):
    """
    Configure structlog for the whole process.

    Args:
        json_output: Render JSON lines when True, coloured console output otherwise
        service_name: Value of the "service" field on every entry
        level: Minimum level name, e.g. "INFO"
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    shared_processors = [
        # correlation_id is bound by the middleware
        structlog.contextvars.merge_contextvars,
        service_name_adder(service_name),
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=log_level)

    # uvicorn would otherwise log every request a second time
    logging.getLogger("uvicorn.error").handlers = []
    logging.getLogger("uvicorn.access").handlers = []


def get_logger():
    return structlog.get_logger()
