from __future__ import annotations

import logging
import os
from typing import Optional

# Every module logs under this hierarchy via get_logger(__name__).
PACKAGE_LOGGER = "microgrid_lab"
LOG_LEVEL_ENV = "MICROGRID_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CONFIGURED = False


def _determine_level() -> int:
    level = logging.getLevelName(os.getenv(LOG_LEVEL_ENV, "").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[int] = None) -> None:
    """Attach a stream handler once and set the microgrid_lab level.

    The root logger is left at WARNING so numpy/pandas chatter stays quiet;
    only the package hierarchy follows ``MICROGRID_LOG_LEVEL``.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level or _determine_level())
    _CONFIGURED = True


def set_level(level_name: str) -> bool:
    """Override the microgrid_lab level, e.g. from a CLI flag. False for unknown names."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        return False
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    return True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
