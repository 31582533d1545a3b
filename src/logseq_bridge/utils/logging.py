"""Structured logging setup for logseq-bridge."""

import structlog
from pathlib import Path
from typing import Any, Optional, TextIO
import os
import sys


VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

# Handle of the log file opened by the last configure_logging() call
_log_file: Optional[TextIO] = None


def log_dir() -> Path:
    """Directory holding the JSON log file.

    Defaults to ~/.cache/logseq-bridge/logs, overridable with the
    LOGSEQ_BRIDGE_LOG_DIR environment variable.
    """
    override = os.environ.get("LOGSEQ_BRIDGE_LOG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".cache" / "logseq-bridge" / "logs"


def configure_logging(level: Optional[str] = None) -> Path:
    """
    Configure structlog for JSON logging to ~/.cache/logseq-bridge/logs/logseq-bridge.log.

    Log level comes from the ``level`` argument (the CLI passes DEBUG for
    ``--debug``), then the LOGSEQ_BRIDGE_LOG_LEVEL environment variable,
    and defaults to INFO.

    Log levels:
    - DEBUG: every Logseq API request/response, classified lines, cursor moves
    - INFO: page resolution, stream/post/wipe summaries
    - WARNING: recoverable parse problems, cleanup failures
    - ERROR: remote call failures that abort an operation

    Example:
        LOGSEQ_BRIDGE_LOG_LEVEL=DEBUG logseq-bridge stream "My Page" < notes.md

        # View logs with jq for readability:
        tail -f ~/.cache/logseq-bridge/logs/logseq-bridge.log | jq .

    Returns:
        Path of the log file being written
    """
    global _log_file

    directory = log_dir()
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / "logseq-bridge.log"

    log_level = (level or os.environ.get("LOGSEQ_BRIDGE_LOG_LEVEL", "INFO")).upper()
    if log_level not in VALID_LEVELS:
        log_level = "INFO"

    previous = _log_file
    _log_file = open(log_file, "a")

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
        logger_factory=structlog.WriteLoggerFactory(file=_log_file),
        # Reconfiguration (tests, repeated CLI invocations) must reach every logger
        cache_logger_on_first_use=False,
    )

    if previous is not None:
        previous.close()

    return log_file


def configure_library_default() -> None:
    """
    Keep an unconfigured structlog quiet for library callers.

    Code that imports the parser or client without going through the CLI
    would otherwise get every debug event printed to stdout. Only warnings
    and errors are shown, on stderr. An existing structlog configuration is
    left untouched.
    """
    if structlog.is_configured():
        return
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger("WARNING"),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
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
        >>> logger.info("stream_block_created", page="Inbox", level=1)
    """
    return structlog.get_logger(name)


configure_library_default()
