"""Watches and condition checkers for Compute Engine state transitions.

Each resource kind has its own target status, timeout and poll interval,
taken from the manager's :class:`~skyprobe.providers.gce.config.GCE`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from skyprobe.orchestration import WatchChecker
from skyprobe.types import ResourceCoordinates
from skyprobe.wait import Watch

if TYPE_CHECKING:
    from .manager import GceManager

VM_RUNNING = "RUNNING"
VM_TERMINATED = "TERMINATED"
DISK_READY = "READY"


def status_is(status: str) -> Callable[[Any], bool]:
    """Target predicate matching a resource's ``status`` field."""

    def is_target(resource: Any) -> bool:
        return getattr(resource, "status", None) == status

    is_target.__name__ = f"status_is_{status.lower()}"
    return is_target


def vm_running_watch(manager: GceManager, coords: ResourceCoordinates) -> Watch:
    return Watch(
        accessor=manager.get_vm,
        coords=coords,
        is_target=status_is(VM_RUNNING),
        interval=manager.config.vm_poll_interval,
        timeout=manager.config.vm_running_timeout,
        description=f"VM {coords}",
    )


def vm_stopped_watch(manager: GceManager, coords: ResourceCoordinates) -> Watch:
    return Watch(
        accessor=manager.get_vm,
        coords=coords,
        is_target=status_is(VM_TERMINATED),
        interval=manager.config.vm_poll_interval,
        timeout=manager.config.vm_stopping_timeout,
        description=f"VM {coords}",
    )


def disk_ready_watch(manager: GceManager, coords: ResourceCoordinates) -> Watch:
    return Watch(
        accessor=manager.get_disk,
        coords=coords,
        is_target=status_is(DISK_READY),
        interval=manager.config.disk_poll_interval,
        timeout=manager.config.disk_creation_timeout,
        description=f"disk {coords}",
    )


def vm_running_checker(manager: GceManager) -> WatchChecker:
    """Checker for ``start_vm``: the VM must reach RUNNING."""
    return WatchChecker(
        accessor=manager.get_vm,
        is_target=status_is(VM_RUNNING),
        interval=manager.config.vm_poll_interval,
        timeout=manager.config.vm_running_timeout,
        label="VM",
    )


def vm_stopped_checker(manager: GceManager) -> WatchChecker:
    """Checker for ``stop_vm``: the VM must reach TERMINATED."""
    return WatchChecker(
        accessor=manager.get_vm,
        is_target=status_is(VM_TERMINATED),
        interval=manager.config.vm_poll_interval,
        timeout=manager.config.vm_stopping_timeout,
        label="VM",
    )
