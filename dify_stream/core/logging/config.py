"""
Logging configuration for the Dify stream client.

Plain text formatting to the console, plus optional log files when LOG_DIR
is set in the environment.
"""

import logging
import os

LOGGER_NAME = "dify-stream"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging():
    """
    Configure the project logger.

    Handlers are rebuilt on every call so a changed LOG_LEVEL or LOG_DIR is
    picked up by reload.

    Returns:
        logging.Logger: Configured logger instance
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    log_dir = os.environ.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(os.path.join(log_dir, "client.log"))
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        logger.addHandler(file_handler)

        if level == logging.DEBUG:
            debug_handler = logging.FileHandler(os.path.join(log_dir, "debug.log"))
            debug_handler.setFormatter(formatter)
            debug_handler.setLevel(logging.DEBUG)
            logger.addHandler(debug_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if level == logging.DEBUG else logging.INFO)
    logger.addHandler(console_handler)

    return logger
