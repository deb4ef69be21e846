"""Central logging helpers

stdout carries command output and received datagrams, so log records go to
stderr and, optionally, a rotating file per component.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional, Union

import structlog
import structlog.dev
import structlog.stdlib

from udpcli.config import settings

_FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_MAX_LOG_BYTES = 5 * 1024 * 1024
_LOG_BACKUPS = 5


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = settings.log_level
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def _renderer(log_format: str):
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.processors.JSONRenderer()


def build_handlers(component: str, file_log: bool = True) -> List[logging.Handler]:
    """stderr handler plus ``<log_dir>/<component>.log`` when file logging is on"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if file_log:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_dir / f"{component}.log",
            maxBytes=_MAX_LOG_BYTES,
            backupCount=_LOG_BACKUPS,
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)
    return handlers


def setup_logging(
    component: str = "udpcli",
    level: Union[int, str, None] = None,
    file_log: bool = True,
    log_format: Optional[str] = None,
) -> None:
    """Route structlog events through stdlib logging for a component"""
    resolved = _resolve_level(level)
    logging.basicConfig(
        level=resolved,
        handlers=build_handlers(component, file_log),
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(log_format or settings.log_format),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).debug(
        "logging_initialized", component=component, level=logging.getLevelName(resolved)
    )
