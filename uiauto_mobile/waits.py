# uiauto_mobile/waits.py
"""
@file waits.py
@brief Bounded wait, retry and settle utilities.

Every wait here has an explicit upper bound; nothing blocks indefinitely.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, Tuple, TypeVar

from .actionlogger import ACTION_LOGGER
from .exceptions import TimeoutError

T = TypeVar("T")


def _now() -> float:
    """Monotonic time source for deterministic timeout calculations."""
    return time.monotonic()


def _set_timeout_metadata(
    error: TimeoutError,
    *,
    description: str,
    timeout: float,
    attempt_count: int,
    elapsed: float,
) -> None:
    error.description = description
    error.timeout = timeout
    error.attempt_count = attempt_count
    error.elapsed_time = elapsed


def settle(seconds: float) -> None:
    """
    Fixed post-mutation pause. The host UI gives no render-complete signal,
    so this is a settling period, not a synchronisation point.
    """
    if seconds > 0:
        time.sleep(seconds)


def wait_until(
    predicate: Callable[[], T],
    timeout: float,
    interval: float = 0.2,
    description: str = "condition",
) -> T:
    """
    Repeatedly runs predicate until it returns a truthy value,
    or until timeout.
    """
    start_time = _now()
    last_exception: Optional[BaseException] = None
    attempt_count = 0

    ACTION_LOGGER.timing(
        event="wait_start",
        description=description,
        metadata={"timeout_s": timeout, "interval_s": interval},
    )

    while True:
        attempt_count += 1
        elapsed = _now() - start_time

        if elapsed >= timeout:
            break

        try:
            result = predicate()
            if result:
                ACTION_LOGGER.timing(
                    event="wait_success",
                    description=description,
                    status="success",
                    metadata={"attempts": attempt_count, "elapsed_s": round(_now() - start_time, 3)},
                )
                return result
        except Exception as e:
            last_exception = e

        time_left = timeout - elapsed
        sleep_time = min(interval, time_left) if time_left > 0 else 0
        if sleep_time > 0:
            time.sleep(sleep_time)

    elapsed = _now() - start_time
    ACTION_LOGGER.timing(
        event="wait_timeout",
        description=description,
        status="error",
        metadata={"timeout_s": timeout, "attempts": attempt_count, "elapsed_s": round(elapsed, 3)},
    )

    if last_exception:
        error = TimeoutError(
            f"Timed out waiting for {description} after {timeout}s: "
            f"{type(last_exception).__name__}: {last_exception}"
        )
        error.original_exception = last_exception
    else:
        error = TimeoutError(
            f"Timed out waiting for {description} after {timeout}s "
            f"(condition kept returning falsy)"
        )

    _set_timeout_metadata(
        error,
        description=description,
        timeout=timeout,
        attempt_count=attempt_count,
        elapsed=elapsed,
    )
    raise error


def retry(
    func: Callable[..., T],
    max_attempts: int = 3,
    interval: float = 0.5,
    exceptions: Tuple[type, ...] = (Exception,),
    description: str = "operation",
    *args: Any,
    **kwargs: Any
) -> T:
    """
    Retry a function up to max_attempts times.

    Exceptions outside ``exceptions`` propagate immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    start_time = _now()
    last_exception: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = func(*args, **kwargs)
            ACTION_LOGGER.timing(
                event="retry_success",
                description=description,
                status="success",
                metadata={"attempts": attempt, "elapsed_s": round(_now() - start_time, 3)},
            )
            return result
        except exceptions as e:
            last_exception = e
            if attempt < max_attempts:
                ACTION_LOGGER.timing(
                    event="retry_wait",
                    description=description,
                    metadata={"attempt": attempt, "sleep_s": round(interval, 3)},
                )
                time.sleep(interval)

    elapsed = _now() - start_time
    error = TimeoutError(
        f"Failed {description} after {max_attempts} attempts. "
        f"Last error: {type(last_exception).__name__}: {last_exception}"
    )
    error.original_exception = last_exception
    _set_timeout_metadata(
        error,
        description=description,
        timeout=elapsed,
        attempt_count=max_attempts,
        elapsed=elapsed,
    )
    raise error from last_exception


def wait_until_passes(
    func: Callable[..., T],
    timeout: float,
    interval: float = 0.2,
    exceptions: Tuple[type, ...] = (Exception,),
    description: str = "operation",
    *args: Any,
    **kwargs: Any
) -> T:
    """
    Wait until func(*args, **kwargs) succeeds without raising one of
    ``exceptions``. The first call always runs, even with a zero timeout.
    """
    start_time = _now()
    attempt_count = 0

    ACTION_LOGGER.timing(
        event="retry_start",
        description=description,
        metadata={"timeout_s": timeout, "interval_s": interval},
    )

    while True:
        attempt_count += 1
        try:
            result = func(*args, **kwargs)
            ACTION_LOGGER.timing(
                event="retry_success",
                description=description,
                status="success",
                metadata={"attempts": attempt_count, "elapsed_s": round(_now() - start_time, 3)},
            )
            return result
        except exceptions as e:
            elapsed = _now() - start_time
            time_left = timeout - elapsed
            if time_left <= 0:
                ACTION_LOGGER.timing(
                    event="retry_timeout",
                    description=description,
                    status="error",
                    metadata={"attempts": attempt_count, "elapsed_s": round(elapsed, 3)},
                )
                error = TimeoutError(
                    f"Timed out waiting for {description} after {timeout}s. "
                    f"Last error: {type(e).__name__}: {e}"
                )
                error.original_exception = e
                _set_timeout_metadata(
                    error,
                    description=description,
                    timeout=timeout,
                    attempt_count=attempt_count,
                    elapsed=elapsed,
                )
                raise error from e
            time.sleep(min(interval, time_left))
