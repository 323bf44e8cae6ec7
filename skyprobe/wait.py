"""Deadline-bounded readiness polling.

A *watch* samples a resource through an accessor at a fixed interval until a
target predicate holds (``READY``) or the timeout elapses (``TIMED_OUT``).

The accessor signals "not yet observable" by raising or by returning None.
Both are treated exactly like a state that does not satisfy the predicate:
the watch keeps polling. A permanently failing accessor (bad credentials,
missing permission) therefore polls until the deadline instead of failing
fast.

Each accessor call is cut off at the deadline (or after one interval, when
less than that remains), and a call cut off this way counts as "not yet
observable". A hung accessor cannot hold a watch past ``timeout + interval``.

Example:
    watch = Watch(
        accessor=manager.get_vm,
        coords=ResourceCoordinates("proj", "asia-east1-b", "vm-1"),
        is_target=lambda vm: vm.status == "RUNNING",
        interval=10.0,
        timeout=180.0,
        description="VM vm-1",
    )
    handle = watch.start()
    if await handle is WatchOutcome.TIMED_OUT:
        ...
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable, Generator
from dataclasses import dataclass

from skyprobe.observability.logger import logger

log = logger.bind(component="watch")

# Strong references to running polls; the event loop only keeps weak ones.
_running: set[asyncio.Task[WatchOutcome]] = set()

type StateAccessor[C, S] = Callable[[C], Awaitable[S | None]]
type TargetPredicate[S] = Callable[[S], bool]


class WatchOutcome(enum.Enum):
    """Terminal result of a watch."""

    READY = "ready"
    TIMED_OUT = "timed_out"


async def watch_until[C, S](
    accessor: StateAccessor[C, S],
    coords: C,
    is_target: TargetPredicate[S],
    *,
    interval: float,
    timeout: float,
    description: str = "resource",
) -> WatchOutcome:
    """Poll ``accessor(coords)`` until ``is_target`` holds or ``timeout`` elapses.

    Args:
        accessor: Async callable returning the observed state. Raising or
            returning None means the resource is not observable yet.
        coords: Identifier passed through to the accessor.
        is_target: Returns True when the observed state is terminal.
        interval: Seconds to sleep between polls.
        timeout: Seconds after which the watch gives up.
        description: Resource label for log messages.

    Returns:
        ``WatchOutcome.READY`` or ``WatchOutcome.TIMED_OUT``.
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    deadline = start + timeout

    while True:
        # An accessor call never outlives the deadline by more than one interval.
        call_limit = max(deadline - loop.time(), interval)
        try:
            async with asyncio.timeout(call_limit):
                state = await accessor(coords)
        except TimeoutError:
            log.trace("{desc} accessor call exceeded {t:.2f}s", desc=description, t=call_limit)
            state = None
        except Exception as e:
            log.trace("{desc} not yet observable: {err}", desc=description, err=e)
            state = None

        if state is not None:
            if is_target(state):
                log.info("{desc} ready after {t:.1f}s", desc=description, t=loop.time() - start)
                return WatchOutcome.READY
            log.trace("{desc} not yet in target state", desc=description)

        elapsed = loop.time() - start
        if elapsed > timeout:
            log.warning("Timeout waiting for {desc} after {t:.1f}s", desc=description, t=elapsed)
            return WatchOutcome.TIMED_OUT

        await asyncio.sleep(max(min(interval, deadline - loop.time()), 0))


class WatchHandle:
    """Result slot of a running watch.

    Awaiting the handle suspends until the watch resolves and yields its
    outcome. The outcome is set exactly once; awaiting again returns the same
    value. Cancellation is not exposed: a started watch always runs to
    ``READY`` or ``TIMED_OUT``, even when nobody awaits it any more.
    """

    __slots__ = ("_task", "description")

    def __init__(self, task: asyncio.Task[WatchOutcome], description: str) -> None:
        self._task = task
        self.description = description

    def done(self) -> bool:
        return self._task.done()

    async def outcome(self) -> WatchOutcome:
        # shield keeps the poll running if the awaiting coroutine is cancelled
        return await asyncio.shield(self._task)

    def __await__(self) -> Generator[object, None, WatchOutcome]:
        return self.outcome().__await__()

    def __repr__(self) -> str:
        state = "done" if self._task.done() else "polling"
        return f"WatchHandle({self.description!r}, {state})"


@dataclass(frozen=True, slots=True)
class Watch[C, S]:
    """Configuration of one watch, bound to a single resource."""

    accessor: StateAccessor[C, S]
    coords: C
    is_target: TargetPredicate[S]
    interval: float
    timeout: float
    description: str = "resource"

    async def run(self) -> WatchOutcome:
        return await watch_until(
            self.accessor,
            self.coords,
            self.is_target,
            interval=self.interval,
            timeout=self.timeout,
            description=self.description,
        )

    def start(self) -> WatchHandle:
        """Schedule the poll as its own task and return its handle.

        Must be called from within a running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self.run(), name=f"watch:{self.description}",
        )
        _running.add(task)
        task.add_done_callback(_running.discard)
        return WatchHandle(task, self.description)
