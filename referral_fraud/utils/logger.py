"""
Logging configuration for the Referral Fraud Engine.

Components log through named loggers under `referral_fraud.*`;
this module attaches a stdout handler to the package root.
"""

import logging
import sys
from typing import Optional

from ..config import settings


def get_logger(name: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (defaults to 'referral_fraud')
        level: Log level name (defaults to APP_LOG_LEVEL)

    Returns:
        Configured logger instance
    """
    logger_name = name or "referral_fraud"
    logger = logging.getLogger(logger_name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level or settings.app_log_level)

    return logger
