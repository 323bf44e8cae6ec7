"""Mutate-then-wait orchestration.

Every long-running cloud operation has the same shape: issue one mutating
request, then block until the resource is observed in its new state.

- ``create_and_wait`` pairs a mutation with a :class:`~skyprobe.wait.Watch`
  (create VM until RUNNING, create disk until READY).
- ``transition_and_verify`` pairs a mutation with a :class:`ConditionChecker`
  supplied by the caller (stop VM until TERMINATED, start VM until RUNNING).

The mutation is never retried and always completes before any polling
starts.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from skyprobe.core.exceptions import (
    MutationFailedError,
    VerificationFailedError,
    WatchTimeoutError,
)
from skyprobe.observability.logger import logger
from skyprobe.wait import StateAccessor, TargetPredicate, Watch, WatchOutcome

log = logger.bind(component="orchestration")

type Mutation[T] = Callable[[], Awaitable[T]]


@runtime_checkable
class ConditionChecker[C](Protocol):
    """Verifies that a resource reached the state a transition promised."""

    async def check(self, coords: C) -> bool: ...


@dataclass(frozen=True, slots=True)
class WatchChecker[C, S]:
    """ConditionChecker backed by a fresh watch per check.

    Raises WatchTimeoutError when the watch times out.
    """

    accessor: StateAccessor[C, S]
    is_target: TargetPredicate[S]
    interval: float
    timeout: float
    label: str = "resource"

    def watch(self, coords: C) -> Watch[C, S]:
        return Watch(
            accessor=self.accessor,
            coords=coords,
            is_target=self.is_target,
            interval=self.interval,
            timeout=self.timeout,
            description=f"{self.label} {coords}",
        )

    async def check(self, coords: C) -> bool:
        watch = self.watch(coords)
        if await watch.start() is WatchOutcome.TIMED_OUT:
            raise WatchTimeoutError(watch.description, watch.timeout)
        return True


async def _mutate[T](mutate: Mutation[T], resource: str) -> T:
    try:
        return await mutate()
    except Exception as e:
        log.error("Mutation of {resource} failed: {err}", resource=resource, err=e)
        raise MutationFailedError(resource, str(e)) from e


async def create_and_wait[T](mutate: Mutation[T], watch: Watch) -> T:
    """Run ``mutate`` and wait for ``watch`` to report READY.

    Returns:
        Whatever ``mutate`` returned (typically the cloud operation).

    Raises:
        MutationFailedError: ``mutate`` raised; no watch was started.
        WatchTimeoutError: The watch timed out.
    """
    result = await _mutate(mutate, watch.description)
    log.debug("Mutation of {resource} accepted, watching", resource=watch.description)

    if await watch.start() is WatchOutcome.TIMED_OUT:
        raise WatchTimeoutError(watch.description, watch.timeout)
    return result


async def transition_and_verify[C, T](
    mutate: Mutation[T],
    coords: C,
    checker: ConditionChecker[C],
    *,
    resource: str | None = None,
) -> T:
    """Run ``mutate`` and confirm the transition with ``checker``.

    Exceptions raised by the checker propagate unchanged.

    Raises:
        MutationFailedError: ``mutate`` raised; the checker was not called.
        VerificationFailedError: The checker returned False.
    """
    label = resource or str(coords)
    result = await _mutate(mutate, label)
    log.debug("Transition of {resource} accepted, verifying", resource=label)

    if not await checker.check(coords):
        raise VerificationFailedError(label)
    return result
