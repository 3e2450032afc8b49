# ─────────────────────────────────────────────────────────────────────────────
# Logging Configuration — structlog over stdlib logging
# ─────────────────────────────────────────────────────────────────────────────
# Every record, structlog-native or from a third-party stdlib logger (uvicorn,
# asyncpg), leaves through one stdout handler with the same renderer. Each
# event carries the service name and version so lines from several gateway
# deployments can share one log stream.
# ─────────────────────────────────────────────────────────────────────────────


import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog

from gateway import __version__

SERVICE_NAME = "playerdata-gateway"

# Loggers that install their own handlers; records are sent to root instead.
_ROUTED_TO_ROOT = ("uvicorn", "uvicorn.error", "asyncpg")


def _service_fields(service: str, version: str) -> Callable[..., Any]:
    def add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service)
        event_dict.setdefault("version", version)
        return event_dict

    return add_service


def resolve_level(log_level: str) -> int:
    """Map a level name ("info", "WARNING") to its logging constant."""
    level = logging.getLevelName(log_level.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level {log_level!r}")
    return level


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    *,
    service: str = SERVICE_NAME,
) -> None:
    level = resolve_level(log_level)

    # Run once per record: by structlog for its own loggers, by the formatter
    # (foreign_pre_chain) for records that arrive through plain stdlib logging.
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_fields(service, __version__),
    ]

    if json_output:
        # Tracebacks become a string field instead of a multi-line dump
        final: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _ROUTED_TO_ROOT:
        routed = logging.getLogger(name)
        routed.handlers.clear()
        routed.propagate = True

    # Access lines come from RequestContextMiddleware
    access = logging.getLogger("uvicorn.access")
    access.handlers.clear()
    access.propagate = False
