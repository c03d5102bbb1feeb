"""
Logging setup for the Park and Ride API.

Every module logs through ``logging.getLogger(__name__)``; this module
only attaches handlers to the root logger.  Request access lines are
written by the monitoring middleware, so uvicorn's own access logger is
turned down to avoid printing each request twice.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    quiet_loggers: Iterable[str] = ("uvicorn.access", "httpx"),
) -> None:
    """Attach console (and optional file) handlers to the root logger.

    Calling this more than once is harmless: if the root logger already
    has handlers, only the level of ``quiet_loggers`` is adjusted.

    Parameters
    ----------
    level : str
        Logging level name, case insensitive.  Unknown names fall back
        to ``INFO``.
    logfile : Optional[str]
        File to append log records to.  Empty or ``None`` disables the
        file handler.
    quiet_loggers : Iterable[str]
        Third-party loggers raised to ``WARNING``.
    """
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
