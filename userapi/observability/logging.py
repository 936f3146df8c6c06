from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


_CONFIGURED = False
_SERVICE = "user-service"


def add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp the service name from the most recent ``configure_logging`` call."""
    event_dict.setdefault("service", _SERVICE)
    return event_dict


def configure_logging(level: int | str = logging.INFO, service: str = "user-service") -> None:
    """Configure structlog + stdlib logging for JSON output on stdout.

    ``level`` accepts a logging constant or its name (``"DEBUG"``). Every
    event carries a ``service`` field. Handlers are installed once; later
    calls only update the service name (each app built by ``create_app``
    logs under its own ``APP_NAME``).
    """

    global _CONFIGURED, _SERVICE
    _SERVICE = service
    if _CONFIGURED:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[*pre_chain, structlog.stdlib.ExtraAdder()],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn installs its own handlers; route them through ours.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)

    _CONFIGURED = True
