"""Logging helpers."""

import logging
import os
from logging.handlers import RotatingFileHandler


def _current_log_path(logger: logging.Logger):
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            return handler.baseFilename
    return None


def setup_logging(log_dir: str = "logs", level="INFO") -> tuple[logging.Logger, str]:
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.abspath(os.path.join(log_dir, "svi.log"))

    logger = logging.getLogger("svi")
    logger.setLevel(level)

    if logger.handlers and _current_log_path(logger) == log_path:
        return logger, log_path

    # a different log directory replaces the handlers of the previous one
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3)
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)

    return logger, log_path
