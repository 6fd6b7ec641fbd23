"""
Logging helpers for the isocensus package.

Library modules obtain their loggers through :func:`get_logger`. Nothing is
emitted until an application (for example the CLI) calls
:func:`configure_logging`.
"""

import functools
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional, Union

LOG_FORMAT = "%(asctime)s [%(funcName)s] - %(message)s"
ROOT_LOGGER_NAME = "isocensus"
LOG_LEVEL_ENV = "ISOCENSUS_LOG_LEVEL"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger belonging to the isocensus logger hierarchy.

    Parameters
    ----------
    name : str
        Logger name, e.g. ``"isocensus.parsing"``.

    Returns
    -------
    logging.Logger
        The logger.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def initialize_logging(level: Optional[str] = None) -> None:
    """
    Install the default library logging setup.

    A ``NullHandler`` is attached to the package logger so that importing
    isocensus never prints anything by itself. The level can be preset with
    the ``ISOCENSUS_LOG_LEVEL`` environment variable.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())

    level = level or os.environ.get(LOG_LEVEL_ENV)
    if level:
        logger.setLevel(level.upper())


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    fmt: str = LOG_FORMAT,
) -> None:
    """
    Configure logging for an application using isocensus.

    Parameters
    ----------
    level : int or str
        Logging level for the root logger and the optional file handler.
    log_file : str or Path, optional
        Also write log records to this file.
    fmt : str
        Log record format.
    """
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(format=fmt, level=level)
    logging.captureWarnings(True)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

    if log_file:
        log_file = Path(log_file)
        if not log_file.parent.exists():
            log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt))
        logging.getLogger().addHandler(handler)


def log_execution_time(logger: logging.Logger, level: int = logging.DEBUG) -> Callable:
    """
    Decorator logging how long the wrapped function took.

    Parameters
    ----------
    logger : logging.Logger
        Logger that receives the timing message.
    level : int
        Level of the timing message.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                logger.log(level, "%s finished in %.3fs", fn.__name__, time.perf_counter() - start)

        return wrapper

    return decorator
