"""
Logging setup using Loguru.

Library modules only do `from loguru import logger`. Applications call
`setup_logger()` once to choose where records go.

Loguru uses brace formatting, not printf style:
   logger.info("Dispatching {} #{}", kind, token)
   logger.info(f"Dispatching {kind} #{token}")
"""

import sys
from pathlib import Path

from loguru import logger

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def format_exception_short(exception: BaseException, context: str | None = None) -> str:
    """
    Format an exception as a single readable line.

    Example:
        >>> format_exception_short(ValueError("bad page"), "Listing posts")
        'Listing posts | ValueError: bad page'
    """
    parts = []
    if context:
        parts.append(context)
    parts.append(f"{type(exception).__name__}: {exception}")

    tb = exception.__traceback__
    if tb:
        while tb.tb_next:
            tb = tb.tb_next
        parts.append(f"({Path(tb.tb_frame.f_code.co_filename).name}:{tb.tb_lineno})")

    return " | ".join(parts)


def setup_logger(level: str = "INFO", log_file: Path | str | None = None) -> list[int]:
    """Replace existing handlers with a console handler and an optional file handler.

    Args:
        level: Console level; unknown names fall back to INFO
        log_file: When given, also write DEBUG and above to this file

    Returns:
        Ids of the installed handlers
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        level = "INFO"

    logger.remove()
    handler_ids = [
        logger.add(sys.stderr, colorize=True, format=CONSOLE_FORMAT, level=level)
    ]

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                path,
                rotation="100 MB",
                retention="30 days",
                format=FILE_FORMAT,
                level="DEBUG",
            )
        )

    return handler_ids


__all__ = ["logger", "format_exception_short", "setup_logger"]
