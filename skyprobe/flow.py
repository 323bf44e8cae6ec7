"""Fixed-interval confirmation and retry primitives.

``confirm`` certifies that a condition is stably true: the predicate must hold
on every one of ``attempts`` probes. ``retry_until_success`` looks for any
success within ``attempts`` tries. Both space calls by a fixed ``interval``
(no backoff, no jitter) and never sleep after the final call.

Example:
    from skyprobe.flow import confirm, retry_until_success

    # Port answers three times in a row, one second apart
    stable = confirm(3, port_is_open, interval=1.0)

    # Give the health endpoint five chances
    healthy = retry_until_success(5, ping, interval=2.0)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    Retrying,
    retry_if_not_result,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from skyprobe.observability.logger import logger

log = logger.bind(component="flow")


def _check_attempts(attempts: int) -> None:
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")


def _trace_attempt(kind: str, attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        log.trace(
            "{kind}: attempt {n}/{total} returned {result}",
            kind=kind,
            n=state.attempt_number,
            total=attempts,
            result=state.outcome.result() if state.outcome else None,
        )

    return before_sleep


def _confirm_policy(attempts: int, interval: float) -> dict[str, object]:
    # Keep probing while the predicate holds; a full run of successes is a pass.
    return {
        "stop": stop_after_attempt(attempts),
        "wait": wait_fixed(interval),
        "retry": retry_if_result(bool),
        "retry_error_callback": lambda _state: True,
        "before_sleep": _trace_attempt("confirm", attempts),
    }


def _retry_policy(attempts: int, interval: float) -> dict[str, object]:
    return {
        "stop": stop_after_attempt(attempts),
        "wait": wait_fixed(interval),
        "retry": retry_if_not_result(bool),
        "retry_error_callback": lambda _state: False,
        "before_sleep": _trace_attempt("retry", attempts),
    }


def confirm(attempts: int, predicate: Callable[[], bool], interval: float) -> bool:
    """Return True only if ``predicate`` holds on ``attempts`` consecutive calls.

    Stops at the first False without using the remaining attempts.
    Exceptions raised by the predicate propagate.
    """
    _check_attempts(attempts)
    return bool(Retrying(**_confirm_policy(attempts, interval))(predicate))


def retry_until_success(attempts: int, operation: Callable[[], bool], interval: float) -> bool:
    """Return True as soon as ``operation`` succeeds, False after ``attempts`` failures."""
    _check_attempts(attempts)
    return bool(Retrying(**_retry_policy(attempts, interval))(operation))


async def confirm_async(
    attempts: int, predicate: Callable[[], Awaitable[bool]], interval: float,
) -> bool:
    """Coroutine twin of :func:`confirm`; sleeps with ``asyncio.sleep``."""
    _check_attempts(attempts)
    return bool(await AsyncRetrying(**_confirm_policy(attempts, interval))(predicate))


async def retry_until_success_async(
    attempts: int, operation: Callable[[], Awaitable[bool]], interval: float,
) -> bool:
    """Coroutine twin of :func:`retry_until_success`."""
    _check_attempts(attempts)
    return bool(await AsyncRetrying(**_retry_policy(attempts, interval))(operation))
