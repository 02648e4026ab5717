"""Package logging helpers.

All modules log through ``get_logger(__name__)`` so that one call to
``set_level`` or ``setup`` controls the whole ``anharmpy`` hierarchy.

>>> from anharmpy.logger import get_logger
>>> log = get_logger(__name__)
>>> log.info("standard message")
>>> log.debug2("inner-loop detail")
"""

from __future__ import annotations

import logging
import sys


ROOT_NAME = "anharmpy"

# Below DEBUG=10, for per-k-point detail inside the self-energy loops.
DEBUG2 = 9

logging.addLevelName(DEBUG2, "DEBUG2")


class _AnharmLogger(logging.Logger):
    """Logger with a ``debug2`` convenience method."""

    def debug2(self, msg, *args, **kwargs):
        if self.isEnabledFor(DEBUG2):
            self._log(DEBUG2, msg, args, **kwargs)


logging.setLoggerClass(_AnharmLogger)

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> _AnharmLogger:
    """Return a logger in the ``anharmpy`` hierarchy."""

    return logging.getLogger(name or ROOT_NAME)


def set_level(level: int | str = logging.INFO) -> None:
    """Set the level of the package root logger."""

    if isinstance(level, str):
        level = level.strip().upper()
        if level == "DEBUG2":
            level = DEBUG2
    logging.getLogger(ROOT_NAME).setLevel(level)


def setup(level: int | str = logging.INFO, stream=None) -> None:
    """Attach a stream handler to the package root logger once."""

    root = logging.getLogger(ROOT_NAME)
    set_level(level)
    if root.handlers:
        return
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
