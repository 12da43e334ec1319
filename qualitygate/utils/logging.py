"""Loguru configuration for qualitygate.

Usage:
    from qualitygate.utils.logging import logger
    logger.info("Message")

Environment Variables:
    QUALITYGATE_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR for stderr (default: INFO)
    QUALITYGATE_LOG_FILE: extra log file that receives every run at DEBUG

Each run additionally writes <qg_dir>/qualitygate.log (see configure_file_logging).
While the live phase table is on screen, stderr logging is routed through the
renderer so lines appear above the table instead of tearing it.
"""

import os
import sys
from pathlib import Path

from loguru import logger

logger.remove()

_log_level = os.environ.get("QUALITYGATE_LOG_LEVEL", "INFO").upper()

# ASCII only - Windows CP1252 consoles
_stderr_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)
_file_format = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def _add_stderr_sink() -> int:
    return logger.add(sys.stderr, level=_log_level, format=_stderr_format, colorize=None)


_stderr_handler_id: int | None = _add_stderr_sink()

if os.environ.get("QUALITYGATE_LOG_FILE"):
    logger.add(os.environ["QUALITYGATE_LOG_FILE"], level="DEBUG", format=_file_format)


def configure_file_logging(log_dir: Path, level: str = "DEBUG") -> int:
    """Attach the per-run log file in log_dir.

    Returns:
        The loguru handler id; remove it when the run ends.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    return logger.add(
        log_dir / "qualitygate.log",
        rotation="10 MB",
        retention="7 days",
        level=level,
        format=_file_format,
    )


def swap_to_rich_sink(rich_sink_fn) -> int | None:
    """Replace the stderr sink with rich_sink_fn while a Live display is active.

    Returns:
        Handler id of the rich sink, or None when stderr logging is already off.
    """
    global _stderr_handler_id

    if _stderr_handler_id is None:
        return None
    logger.remove(_stderr_handler_id)
    _stderr_handler_id = None
    return logger.add(rich_sink_fn, level=_log_level, format=_stderr_format, colorize=True)


def restore_stderr_sink(rich_handler_id: int | None) -> None:
    """Undo swap_to_rich_sink."""
    global _stderr_handler_id

    if rich_handler_id is not None:
        try:
            logger.remove(rich_handler_id)
        except ValueError:
            pass  # already removed
    if _stderr_handler_id is None:
        _stderr_handler_id = _add_stderr_sink()


__all__ = [
    "logger",
    "configure_file_logging",
    "swap_to_rich_sink",
    "restore_stderr_sink",
]
