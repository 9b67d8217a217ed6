"""Central logging configuration for the library."""
from __future__ import annotations

import logging
import os
from typing import Optional

LOG_LEVEL_ENV = "DOCX_MARKUP_LOG_LEVEL"
_DEFAULT_LEVEL = "WARNING"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-level logger, configuring the root logger on first use.

    The level comes from ``DOCX_MARKUP_LOG_LEVEL`` when set.
    """
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        level = os.environ.get(LOG_LEVEL_ENV, _DEFAULT_LEVEL).upper()
        logging.basicConfig(level=getattr(logging, level, logging.WARNING), format=_FORMAT)
    return logger
