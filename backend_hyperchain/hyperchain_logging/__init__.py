"""
Structured logging for Backend Hyperchain.

JSON logs with timestamp, event_type and pipeline context (tx hash, wallet, score).
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_hyperchain.hyperchain_logging.logger import (
    bind_pipeline_context,
    clear_pipeline_context,
    configure_structlog,
    get_logger,
    short_id,
)

__all__ = [
    "bind_pipeline_context",
    "clear_pipeline_context",
    "configure_structlog",
    "get_logger",
    "short_id",
]
