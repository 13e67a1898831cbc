"""
Logging configuration for the gateway processes.

Every process (supervisor and each channel worker) calls setup_logging()
once; components log through gateway.<component> children.
"""

import logging
import sys

LOGGER_NAME = "gateway"
LOG_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Route gateway.* records to stdout at the given level."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    # Idempotent: a spawned worker configures its own copy
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)

    # uvicorn and python-telegram-bot configure the root logger their own way
    logger.propagate = False

    return logger


def get_logger(component: str) -> logging.Logger:
    """Child logger for one component, e.g. gateway.whatsapp."""
    return logging.getLogger(f"{LOGGER_NAME}.{component}")
