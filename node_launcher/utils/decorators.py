import functools
import inspect
import time
from typing import Any, Callable, TypeVar

from loguru import logger as logging

C = TypeVar("C", bound=Callable[..., Any])


def log_execution(enabled: bool = True, level: str = "DEBUG") -> Callable[[C], C]:
    """
    Decorator factory that logs how long the decorated function or method took.

    The duration is logged whether the call returns or raises, so a failed
    build still reports how long it ran.

    Args:
        enabled (bool): Flag to enable or disable logging.
        level (str): loguru level the timing line is logged at.

    Returns:
        Callable: A decorator that wraps the target function or method.
    """

    def decorator(func: C) -> C:
        is_coroutine = inspect.iscoroutinefunction(func)

        if is_coroutine:

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    if enabled:
                        _log_execution_details(
                            func, start_time, time.perf_counter(), level)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                if enabled:
                    _log_execution_details(
                        func, start_time, time.perf_counter(), level)

        return sync_wrapper  # type: ignore

    return decorator


def _log_execution_details(
    f: Callable[..., Any],
    start: float,
    end: float,
    level: str,
) -> None:
    """
    Logs the execution time of the function or method.

    Args:
        f (Callable): The function or method that was executed.
        start (float): Start time of the function execution.
        end (float): End time of the function execution.
        level (str): loguru level to log at.
    """
    logging.log(level, f"Executed {f.__qualname__} in {end - start:f} seconds")
