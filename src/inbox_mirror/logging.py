"""
loguru sinks for the mirror.

stderr is what the supervisor sees; the optional file keeps every per-message
decision (skipped, delivered, failed) so a missing comment can be traced back
to the scan that saw its message.
"""

from __future__ import annotations
import sys
from pathlib import Path
from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(
    log_level: str = "INFO",
    log_file: str | Path | None = None,
    rotation: str = "10 MB",
    retention: str = "14 days",
    console_level: str | None = None,
) -> None:
    """
    Replace loguru's default sink with the mirror's sinks.

    With ``log_file`` set, the file gets everything at ``log_level`` and
    stderr is quieted to WARNING unless ``console_level`` says otherwise.
    An unwritable log location is reported and the console sink kept.
    """
    logger.remove()
    if console_level is None:
        console_level = "WARNING" if log_file else log_level
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    if not log_file:
        return

    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            encoding="utf-8",
            catch=True,
        )
    except OSError as e:
        logger.warning(f"File logging to {log_path} unavailable ({e}); using stderr only")
        return
    logger.debug(f"Mirror log file: {log_path}")


__all__ = ["logger", "setup_logging"]
