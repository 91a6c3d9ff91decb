"""
bosbase_sdk.tier0_core.logging
───────────────────────────────
Structured logging for the SDK. Every module logs through get_logger(), which
configures structlog on first use: levels, contextvars merging, ISO
timestamps and redaction of tokens and credentials.

Configure via: BOSBASE_LOG_LEVEL, BOSBASE_LOG_FORMAT=json|console
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from bosbase_sdk.tier0_core.config import get_config
from bosbase_sdk.tier0_core.redact import structlog_redact_processor


# ── Configuration ─────────────────────────────────────────────────────────────

def _configure_structlog() -> None:
    config = get_config()
    log_level = config.log_level.upper()
    log_format = config.log_format
    level = getattr(logging, log_level, logging.WARNING)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog_redact_processor,
    ]

    if log_format == "console":
        renderer: Any = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # A library attaches to its own logger, not the root one.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    sdk_logger = logging.getLogger("bosbase_sdk")
    sdk_logger.addHandler(handler)
    sdk_logger.setLevel(level)
    sdk_logger.propagate = False


# ── Public API ────────────────────────────────────────────────────────────────

_configured = False


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger bound to the given name.

    Usage:
        log = get_logger(__name__)
        log.debug("client.request", method="GET", url=url)
    """
    global _configured
    if not _configured:
        _configure_structlog()
        _configured = True
    return structlog.get_logger(name or "bosbase_sdk")


__all__ = ["get_logger"]
