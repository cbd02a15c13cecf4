"""Utility decorators for consistent error handling."""
from __future__ import annotations

import functools
import time
from typing import Callable, Tuple, Type, TypeVar

from loguru import logger

from core.exceptions import ConfigurationError
from core.result import Success, Failure, Result

T = TypeVar('T')


def as_result(*error_types: Type[ConfigurationError]) -> Callable[[Callable[..., T]], Callable[..., Result[T]]]:
    """Decorator factory converting function output to a Result.

    Return values are wrapped in Success. Exceptions that are instances of
    ``error_types`` are wrapped in Failure; any other exception propagates.

    Args:
        *error_types: ConfigurationError subclasses to capture (defaults to all of them)
    """
    captured: Tuple[Type[ConfigurationError], ...] = error_types or (ConfigurationError,)

    def decorator(func: Callable[..., T]) -> Callable[..., Result[T]]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Result[T]:
            try:
                return Success(func(*args, **kwargs))
            except captured as e:
                return Failure(e)
        return wrapper
    return decorator


def log_execution_time(logger_instance=logger, level: str = "DEBUG"):
    """Decorator to log function execution time.

    Args:
        logger_instance: Logger to use
        level: Log level (DEBUG, INFO, etc.)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = time.time() - start_time
                log_func = getattr(logger_instance, level.lower(), logger_instance.debug)
                log_func(f"{func.__name__} executed in {elapsed:.3f}s")
        return wrapper
    return decorator
