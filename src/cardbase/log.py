"""Loguru sink setup."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FILE_ROTATION = "10 MB"


def configure_logging(level: str = "INFO", log_path: Path | str | None = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, enqueue=False)
    if not log_path:
        return
    log_path = Path(log_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise RuntimeError(f"Failed to prepare log directory {log_path.parent}: {error}") from error
    logger.add(
        log_path,
        level="DEBUG",
        rotation=LOG_FILE_ROTATION,
        enqueue=False,
        encoding="utf-8",
    )
