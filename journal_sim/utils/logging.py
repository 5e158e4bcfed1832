"""Loguru sinks for the CLI and for simulations running on worker threads."""
import sys
from pathlib import Path

from loguru import logger


LOG_FILE_NAME = "journal-sim.log"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> "
    "<level>{level: <8}</level> "
    "<cyan>{name}</cyan> - {message}"
)

# Batches log from pool threads, so the file sink records the thread name.
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} | {thread.name} | {message}"
)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path = Path("db/logs"),
    console: bool = True,
) -> Path:
    """
    Replace all loguru handlers with a rotating file sink and, optionally,
    a colorized stderr sink.

    Returns the path of the active log file.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    handlers = [
        {
            "sink": log_file,
            "format": FILE_FORMAT,
            "level": log_level,
            "rotation": "10 MB",
            "retention": "7 days",
            "compression": "zip",
            "enqueue": True,
        },
    ]
    if console:
        handlers.insert(0, {
            "sink": sys.stderr,
            "format": CONSOLE_FORMAT,
            "level": log_level,
            "colorize": True,
        })

    logger.configure(handlers=handlers)
    logger.debug(f"Logging to {log_file} at {log_level}")
    return log_file
