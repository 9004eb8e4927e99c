"""Loguru sinks for the backend: stderr for the operator, a rotating file for support."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FILENAME = "salon.log"

_CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level:<7}</level> | {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level:<7} | {name}:{line} | {message}"


def setup_logger(log_dir: Path | None = None, level: str = "INFO") -> None:
    """
    Replace any existing sinks.

    The console gets ``level`` and above; the file under ``log_dir`` always
    records DEBUG. Tracebacks in the file omit local variable values, since
    those can include PINs or the remote token.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_CONSOLE_FORMAT, colorize=True)

    if log_dir is None:
        return
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_dir / LOG_FILENAME),
        level="DEBUG",
        format=_FILE_FORMAT,
        rotation="5 MB",
        retention="7 days",
        encoding="utf-8",
        diagnose=False,
    )
    logger.debug(f"Logging to {log_dir / LOG_FILENAME}")
