import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

import structlog


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = True,
    logs_dir: Optional[Path] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
        logs_dir: Directory for log files (defaults to ./logs)
        stream: Console stream (defaults to stdout)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Configure structlog
    structlog.configure(
        processors=[
            # Add extra context
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            # JSON formatting for file logs
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Console handler
    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(console_formatter)

    # Root logger setup
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()  # Clear any existing handlers
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir = Path(logs_dir) if logs_dir else Path("logs")
        logs_dir.mkdir(parents=True, exist_ok=True)

        # General application log file
        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
        app_handler.setFormatter(app_formatter)
        root_logger.addHandler(app_handler)

        # Error-only log file for critical issues
        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        )
        error_handler.setFormatter(error_formatter)
        root_logger.addHandler(error_handler)


def get_recall_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger for store and indexing events.

    Args:
        name: Logger name (defaults to "recall")

    Returns:
        Structured logger
    """
    return structlog.get_logger(name or "recall")


def log_flush_failure(
    error: BaseException,
    context: Dict[str, Any],
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    """Log a failed snapshot flush with its context.

    Args:
        error: The exception that occurred
        context: Additional context (snapshot name, card count, ...)
        logger: Logger to use (creates one if not provided)
    """
    if logger is None:
        logger = get_recall_logger()

    logger.error(
        "Snapshot flush failed",
        error_type=type(error).__name__,
        error_message=str(error),
        timestamp=datetime.now().isoformat(),
        **context,
    )


def log_sync_summary(
    stats: Dict[str, int],
    duration_seconds: float,
    logger: Optional[structlog.BoundLogger] = None,
) -> None:
    """Log the outcome of a full re-index.

    Args:
        stats: Counters returned by the reconciler
        duration_seconds: Wall time of the run
        logger: Logger to use (creates one if not provided)
    """
    if logger is None:
        logger = get_recall_logger()

    logger.info(
        "Re-index completed",
        duration_seconds=round(duration_seconds, 3),
        timestamp=datetime.now().isoformat(),
        **stats,
    )
