"""
Structured logging for the transaction pipeline.

structlog, configured once on first import from LOG_LEVEL / LOG_FORMAT:
JSON lines in production, colored console output with LOG_FORMAT=console.
Every record carries an ISO timestamp, the level, the module name and a
snake_case event_type (the first positional arg), plus key/value context
such as tx_hash, wallet_id and risk_score.

Context bound with bind_pipeline_context() lives in a contextvar, so it is
scoped to the asyncio task that bound it: each ingestion task tags its own
lines with its source name without passing a logger around.

No backend_hyperchain imports here; everything else imports this module.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"


def _timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's 'event' becomes event_type; message mirrors it when absent."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """(Re)configure structlog. Arguments default to LOG_LEVEL and LOG_FORMAT."""
    level_name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    level_value = getattr(logging, level_name, logging.INFO)
    fmt = (fmt or os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _timestamp,
        _event_type,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        # datetimes, Decimals and enums in context are rendered with str()
        processors.append(structlog.processors.JSONRenderer(default=str))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Structured logger for a module:

        logger = get_logger(__name__)
        logger.info("tx_stored", tx_hash=short_id(h), risk_score=85)

    -> {"event_type": "tx_stored", "tx_hash": "0x1234abcd...", "risk_score": 85,
        "logger": "backend_hyperchain.store...", "level": "info", "timestamp": "..."}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_pipeline_context(**context: Any) -> None:
    """Attach context (e.g. source="block_feed") to every log line of the current task."""
    structlog.contextvars.bind_contextvars(**context)


def clear_pipeline_context() -> None:
    structlog.contextvars.clear_contextvars()


def short_id(value: str | None, length: int = 10) -> str:
    """Shorten a hash or address for log output."""
    if not value:
        return ""
    return value[:length] + "..." if len(value) > length else value
