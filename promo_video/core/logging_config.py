"""Logging configuration with render context in every line."""

import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

# Bound extras shown in front of each message, in this order
CONTEXT_FIELDS = ("render_id", "job_id", "stage", "segment")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<magenta>{extra[ctx]}</magenta><level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {extra[ctx]}{message}"


def render_context(extra: dict[str, Any]) -> str:
    """Format bound render context as ``[render_id=.. stage=..] ``, or "" when none is bound."""
    parts = [f"{field}={extra[field]}" for field in CONTEXT_FIELDS if extra.get(field) is not None]
    return f"[{' '.join(parts)}] " if parts else ""


def _attach_context(record: dict[str, Any]) -> None:
    record["extra"]["ctx"] = render_context(record["extra"])


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure console and optional file logging.

    Every record gets an ``extra[ctx]`` prefix built from the render id, job id,
    stage and segment bound on the logger, so lines from concurrent renders
    can be told apart.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to log file
        rotation: Log rotation size
        retention: Log retention period
    """
    logger.remove()
    logger.configure(patcher=_attach_context)

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
        )


def get_logger(name: str, **context: Any) -> Any:
    """
    Get a logger bound to a module name and optional render context.

    Args:
        name: Logger name (typically __name__)
        **context: Context fields such as render_id, job_id, stage or segment

    Returns:
        Logger instance with bound context
    """
    return logger.bind(name=name, **context)


setup_logging()
