"""
Retry helper with exponential backoff and jitter.
"""
import logging
import random
import time
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


def retry_with_backoff(
    attempts: int = 3,
    initial_delay: float = 0.01,
    max_delay: float = 0.5,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple = (Exception,),
):
    """
    Decorator re-running a callable when it raises one of ``exceptions``.

    Args:
        attempts: Total number of calls, including the first one
        initial_delay: Delay before the second call, in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Delay multiplier between attempts
        jitter: Add up to 25% random jitter to every delay
        exceptions: Exception types that trigger another attempt

    The last exception is re-raised once all attempts are used.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts:
                        raise

                    actual_delay = delay
                    if jitter:
                        actual_delay += delay * 0.25 * random.random()
                    actual_delay = min(actual_delay, max_delay)

                    logger.warning(
                        "retrying_operation",
                        extra={
                            "operation": func.__qualname__,
                            "attempt": attempt,
                            "error": str(e),
                        },
                    )
                    time.sleep(actual_delay)
                    delay *= exponential_base
            raise AssertionError("unreachable")

        return wrapper
    return decorator
