"""Logging configuration for the application."""

import logging
import sys
import os
from typing import Optional

import config

_logger: Optional[logging.Logger] = None

def setup_logger() -> logging.Logger:
    """Sets up and returns the application logger.

    Configures a logger that outputs to the console and, when
    `config.LOG_FILE` is set, to a file. The level is determined by the
    DEBUG flag in config.

    Returns:
        logging.Logger: The configured application logger.
    """
    global _logger
    if _logger:
        return _logger

    logger = logging.getLogger("AutograderClient")
    logger.setLevel(config.LOG_LEVEL)

    # Prevent adding multiple handlers if called again
    if not logger.handlers:
        formatter = logging.Formatter(config.LOG_FORMAT)

        # Console Handler
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(config.LOG_LEVEL)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

        # File Handler
        if config.LOG_FILE:
            try:
                log_dir = os.path.dirname(config.LOG_FILE)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir)

                fh = logging.FileHandler(config.LOG_FILE, mode='a', encoding='utf-8')
                fh.setLevel(config.LOG_LEVEL)
                fh.setFormatter(formatter)
                logger.addHandler(fh)
            except OSError as e:
                logger.error(f"Failed to create file handler for {config.LOG_FILE}: {e}", exc_info=config.DEBUG)
                # Continue without file logging if it fails

    _logger = logger

    if config.DEBUG:
        logger.debug("Logger initialized in DEBUG mode.")

    return logger

def get_logger() -> logging.Logger:
    """Returns the singleton logger instance, setting it up if necessary."""
    if _logger is None:
        return setup_logger()
    return _logger
