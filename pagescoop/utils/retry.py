"""Retry and polling helpers built on tenacity.

Network calls (image downloads) go through get_retryer with exponential
backoff. Waiting for an element to show up on a live page goes through
poll_until, which re-checks at a fixed interval and never raises.
"""

from collections.abc import Callable
from typing import Any

import logfire
from tenacity import (
    BaseRetrying,
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)


def get_retryer(
    max_attempts: int = 3,
    wait_min: float = 1.0,
    wait_max: float = 10.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    log_callback: Callable[[RetryCallState], None] | None = None,
) -> BaseRetrying:
    """Build a retryer for transient failures.

    Only the listed exception types are retried; anything else propagates on the
    first attempt. Once attempts run out the last exception is re-raised as is,
    not wrapped in a RetryError.

    Args:
        max_attempts: Total number of calls, including the first one.
        wait_min: Lower bound of the backoff in seconds.
        wait_max: Upper bound of the backoff in seconds.
        exceptions: Exception types considered transient.
        log_callback: Called with the retry state before each sleep.

    Returns:
        A configured tenacity.Retrying object, called as retryer(fn, *args, **kwargs).

    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(min=wait_min, max=wait_max),
        retry=retry_if_exception_type(exceptions),
        before_sleep=log_callback,
        reraise=True,
    )


def log_retry(retry_state: RetryCallState) -> None:
    """Report a failed attempt to logfire before tenacity sleeps."""
    outcome = retry_state.outcome
    exception = outcome.exception() if outcome is not None else None
    next_action = retry_state.next_action
    logfire.warn(
        'Retrying {operation} after attempt {attempt}',
        operation=getattr(retry_state.fn, '__name__', repr(retry_state.fn)),
        attempt=retry_state.attempt_number,
        wait_seconds=next_action.sleep if next_action is not None else 0,
        error=str(exception) if exception else 'unknown error',
    )


def poll_until(
    predicate: Callable[[], bool],
    max_attempts: int = 50,
    interval: float = 0.2,
    sleep: Callable[[float], None] | None = None,
) -> bool:
    """Re-check a predicate at a fixed interval until it holds.

    Args:
        predicate: Zero-argument check; truthy means found.
        max_attempts: Number of checks before giving up.
        interval: Seconds to sleep between checks.
        sleep: Sleep function override (tests pass a no-op).

    Returns:
        True if the predicate held within max_attempts checks, False on timeout.

    """
    if max_attempts < 1:
        return False

    kwargs: dict[str, Any] = {}
    if sleep is not None:
        kwargs['sleep'] = sleep

    retryer = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda found: not found),
        **kwargs,
    )

    try:
        return bool(retryer(predicate))
    except RetryError:
        return False
