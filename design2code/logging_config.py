"""Handler setup for processes that run the design-to-code pipeline.

Package modules only call ``logging.getLogger(__name__)``. Handlers are
attached when a host calls get_pipeline_logger(), or builds a
DesignToCodePipeline with ``log_file=``. Importing the package writes no
files.

Environment:
    LOG_DIR   — directory for log files (default ./logs)
    LOG_LEVEL — level name for the package logger (default INFO)
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "design2code"

LOG_DIR = Path(os.getenv("LOG_DIR", str(Path.cwd() / "logs")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

FILE_FORMAT = "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# name -> log file names already attached
_configured_loggers: dict[str, set[str]] = {}


def _resolve_level(level: Union[int, str, None]) -> int:
    value = LOG_LEVEL if level is None else level
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: str,
    filename: Optional[str] = None,
    level: Union[int, str, None] = None,
) -> logging.Logger:
    """Attach a console handler, plus a file handler under LOG_DIR when
    ``filename`` is given. Repeat calls only add files not yet attached
    and update the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    attached = _configured_loggers.get(name)
    if attached is None:
        attached = _configured_loggers[name] = set()
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console)
        logger.propagate = False

    if filename and filename not in attached:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(LOG_DIR / filename, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(fh)
        attached.add(filename)

    return logger


def get_pipeline_logger(
    filename: Optional[str] = "pipeline.log",
    level: Union[int, str, None] = None,
) -> logging.Logger:
    """Package root logger; every design2code.* module logger feeds it."""
    return setup_logger(PACKAGE_LOGGER, filename, level)


def reset_logger(name: str = PACKAGE_LOGGER) -> None:
    """Close and detach the logger's handlers and forget its setup."""
    if _configured_loggers.pop(name, None) is None:
        return
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
