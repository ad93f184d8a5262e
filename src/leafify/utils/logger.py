"""Structured logging configuration."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from loguru import logger

from ..config import settings

if TYPE_CHECKING:
    from loguru import Logger

_CONFIGURED = False


def _configure() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    logger.remove()
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        log_dir / "leafify.log",
        rotation="10 MB",
        retention="10 days",
        level=settings.log_level,
    )
    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> "Logger":
    _configure()
    return logger.bind(module=name or "leafify")
