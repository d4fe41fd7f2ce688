"""Logging for the thesisflow application.

Everything logs through children of the ``thesisflow`` logger
(``get_logger(__name__)``); ``configure_logging`` attaches the handlers
to that root once per process, driven by ``Settings``.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

APP_LOGGER = "thesisflow"

LINE_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
ISO_DATE = "%Y-%m-%dT%H:%M:%S"

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# attribute set on handlers we own, so reconfiguring replaces only ours
_OWNED = "_thesisflow_handler"


def parse_level(level: str) -> int:
    name = level.strip().upper()
    if name not in _LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(_LEVELS)}")
    return logging.getLevelName(name)


def console_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    return handler


def rotating_file_handler(
    log_dir: str,
    filename: str,
    formatter: logging.Formatter,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Handler:
    """Rotating file under ``log_dir``, created on demand."""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        directory / filename, maxBytes=max_bytes, backupCount=backup_count
    )
    handler.setFormatter(formatter)
    return handler


def setup_logger(
    name: str = APP_LOGGER,
    level: str = "INFO",
    log_dir: Optional[str] = None,
    console: bool = True,
) -> logging.Logger:
    """Attach console and/or file output to ``name``.

    Calling again swaps the handlers installed by a previous call rather
    than stacking a second set; handlers added by anyone else are left
    alone. File output goes to ``<log_dir>/<name>.log`` and is skipped
    when ``log_dir`` is None.
    """
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(level))

    for handler in [h for h in logger.handlers if getattr(h, _OWNED, False)]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LINE_FORMAT, datefmt=ISO_DATE)
    handlers = []
    if console:
        handlers.append(console_handler(formatter))
    if log_dir is not None:
        handlers.append(rotating_file_handler(log_dir, f"{name}.log", formatter))

    for handler in handlers:
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)
    return logger


def configure_logging(settings) -> logging.Logger:
    """Configure the application logger from ``Settings``."""
    return setup_logger(
        APP_LOGGER,
        level=settings.log_level,
        log_dir=settings.log_dir if settings.file_logging else None,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
