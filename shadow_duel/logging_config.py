"""
Logging configuration for the shadow duel engine.

Library modules only call get_logger(); sinks are installed once by the
CLI through setup_logging().
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {name}:{function}:{line} - {message}"

logger.configure(extra={"component": "shadow_duel"})


def setup_logging(level: str = "INFO", debug: bool = False, log_dir: Path | None = None) -> None:
    """
    Configure loguru logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, enable debug logging and a separate debug log file
        log_dir: Directory for log files (defaults to the working directory)
    """
    logger.remove()

    log_level = "DEBUG" if debug else level
    base = Path(log_dir) if log_dir is not None else Path(".")
    base.mkdir(parents=True, exist_ok=True)

    logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT)

    # Transition history (INFO and above) survives across runs
    logger.add(
        base / "shadow_duel.log",
        level="INFO",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )

    if debug:
        logger.add(
            base / "shadow_duel_debug.log",
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="50 MB",
            retention="3 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger bound to a component name.

    Args:
        name: Component name shown in every record (defaults to the package)

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(component=name)
    return logger
