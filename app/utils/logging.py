# app/utils/logging.py
"""
Small logging helper for scripts run outside the FastAPI app.

Usage:
    from app.utils.logging import get_logger
    logger = get_logger("call-center.scripts.create_user", "info")

Attaches a console handler to the root logger when nothing configured one yet.
"""
import logging
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(handler)

    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level.upper())
    return logger
