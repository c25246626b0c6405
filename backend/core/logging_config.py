"""
Loguru logging configuration.

- Colored console output in development
- JSON lines (serialize=True) everywhere else
- Rotating file sink under LOG_DIR
- Correlation ID attached to every record
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from core.correlation import get_correlation_id

if TYPE_CHECKING:
    from loguru import Record


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[correlation_id]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID to log record.

    Always returns True; the filter never drops messages.
    """
    record["extra"]["correlation_id"] = get_correlation_id() or "-"
    return True


def configure_logging(
    environment: str = "development",
    log_dir: str | Path = "logs",
    file_logging: bool = True,
) -> None:
    """
    Configure Loguru for the application.

    Args:
        environment: "development" for colored console, anything else for JSON.
        log_dir: Directory for the rotating file sink.
        file_logging: Disable to log to stderr only (tests, containers).
    """
    logger.remove()

    is_dev = environment == "development"

    if is_dev:
        logger.add(
            sys.stderr,
            format=LOG_FORMAT,
            level="DEBUG",
            filter=correlation_filter,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level="INFO",
            filter=correlation_filter,
            serialize=True,
        )

    if not file_logging:
        return

    logs_path = Path(log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        logs_path / "security.log",
        format=LOG_FORMAT if is_dev else "{message}",
        level="INFO",
        filter=correlation_filter,
        rotation="10 MB",
        retention="30 days",
        serialize=not is_dev,
    )
