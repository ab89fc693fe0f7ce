"""
Shared error handling for read queries
"""

import functools
import logging

from sqlalchemy.exc import SQLAlchemyError


def safe_query(default):
    """
    Log database errors and return `default` instead of raising.

    `default` may be a value or a zero-argument callable (list, a stats
    dataclass) so each failure gets a fresh object.
    """
    def decorator(func):
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError:
                logger.exception("Query %s failed", func.__name__)
                return default() if callable(default) else default
        return wrapper
    return decorator
