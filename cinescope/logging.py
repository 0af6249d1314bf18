"""Structured logging helpers.

Every event carries ``service`` and ``environment`` so log lines from the
catalog, telemetry and fetch layers can be filtered together.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

SERVICE_NAME = "cinescope"


def _service_context(environment: str):
    def processor(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def configure_logging(level: int | str = logging.INFO, *, environment: str = "dev") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _service_context(environment),
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(SERVICE_NAME)

__all__ = ["SERVICE_NAME", "configure_logging", "logger"]
