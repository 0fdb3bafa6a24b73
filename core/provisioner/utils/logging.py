"""Logging for the provisioner; one stdout handler on the package logger."""

import logging
import sys

from provisioner.config import LOG_FORMAT, LOG_LEVEL


def setup_logging(level: int | str = LOG_LEVEL) -> logging.Logger:
    logger = logging.getLogger("provisioner")
    logger.setLevel(level)

    # Reloads (uvicorn --reload, tests) must not stack handlers
    if not any(getattr(h, "_provisioner", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        handler._provisioner = True
        logger.addHandler(handler)

    return logger


logger = setup_logging()
