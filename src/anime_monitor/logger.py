from pathlib import Path
from sys import stdout

from loguru import logger

# Remove default handler
logger.remove()
logger.add(stdout, level="INFO")


def configure_logger(
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    rotation: str = "00:00",
    retention: str = "1 week",
    log_name: str = "anime_monitor",
    log_dir: str | Path | None = "logs",
):
    """Configure logger with given settings.

    Args:
        console_level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        file_level: File log level
        rotation: Log rotation settings (time like "00:00" or size like "500 MB")
        retention: How long to keep old logs
        log_name: Base name for the log file
        log_dir: Directory for log files, or None/empty to log to console only
    """
    # Remove all existing handlers first
    logger.remove()

    # Add console handler
    logger.add(
        stdout,
        level=console_level.upper(),
    )

    if not log_dir:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / f"{log_name}_{{time:YYYY-MM-DD}}.log"

    # Add file handler with rotation and retention
    logger.add(
        log_file,
        rotation=rotation,
        retention=retention,
        level=file_level.upper(),
        encoding="utf-8",
        mode="a",
    )


__all__ = ["logger", "configure_logger"]
