# %% -*- coding: utf-8 -*-
"""
Logging for scripts that drive fieldgrid. Modules log through
logging.getLogger(__name__), so all records end up under 'fieldgrid' and one
call to setup_logging routes them to the console and, optionally, a file.
"""

import logging
import sys

PACKAGE_LOGGER = 'fieldgrid'
LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'
DATE_FORMAT = '%H:%M:%S'


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(level=logging.INFO, log_file=None) -> logging.Logger:
    """
    Sends fieldgrid log records to stdout, and to log_file when given.

    Parameters
    ----------
    level : int or str
        Threshold, e.g. logging.DEBUG or 'DEBUG' to see the error of every
        smoothing pass
    log_file : str, optional
        File to write the log to, truncated first

    Calling it again replaces the handlers of the previous call. Returns the
    package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    if log_file:
        logger.addHandler(_handler(logging.FileHandler(log_file, mode='w', encoding='utf-8'), level))

    logger.debug(f"Logging at level {logging.getLevelName(level)}, file {log_file}")
    return logger
