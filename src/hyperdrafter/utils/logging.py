"""Structured logging setup for HyperDrafter."""

import structlog
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any
import os


def configure_logging() -> None:
    """
    Configure structlog for JSON logging to ~/.cache/hyperdrafter/logs/hyperdrafter.log.

    Log level can be controlled via HYPERDRAFTER_LOG_LEVEL environment variable:
    - Set to "DEBUG" to see request payloads and raw streamed text
    - Defaults to "INFO" if not set

    Log levels:
    - DEBUG: LLM request payloads, SSE lines, span corrections, timer activity
    - INFO: Dispatches, completions, highlight replacements
    - WARNING: Dropped spans, discarded stale results
    - ERROR: Analysis failures, HTTP errors

    Example:
        # Enable debug logging
        export HYPERDRAFTER_LOG_LEVEL=DEBUG
        hyperdrafter watch draft.md

        # View logs with jq for readability:
        tail -f ~/.cache/hyperdrafter/logs/hyperdrafter.log | jq .
    """
    log_dir = Path.home() / ".cache" / "hyperdrafter" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "hyperdrafter.log"

    log_level = os.environ.get("HYPERDRAFTER_LOG_LEVEL", "INFO").upper()

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
    if log_level not in valid_levels:
        log_level = "INFO"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Structured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("highlights_replaced", paragraph_id="p1", count=2)
    """
    return structlog.get_logger(name)


def bind_paragraph(paragraph_id: str) -> AbstractContextManager:
    """
    Attach paragraph_id to every log line emitted within the block.

    The binding lives in a context variable, so it follows the current
    asyncio task and any task created inside the block (such as the
    remote call of an analysis), without leaking into other paragraphs.

    Example:
        >>> with bind_paragraph("p1"):
        ...     logger.info("analysis_dispatched", content_length=42)
    """
    return structlog.contextvars.bound_contextvars(paragraph_id=paragraph_id)
