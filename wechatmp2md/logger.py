"""
Logging for wechatmp2md.

All modules log through children of the "wechatmp2md" logger, so one call to
setup_logger() controls the whole conversion (the CLI uses it for --verbose).
"""

import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "wechatmp2md"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the package logger: stdout, plus log_file when given.

    Calling it again keeps the existing handlers and only changes the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    if log_file:
        logger.addHandler(_handler(logging.FileHandler(log_file), level))
    return logger


logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """Logger for one stage, e.g. get_module_logger("walker") -> "wechatmp2md.walker"."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{module_name}")
