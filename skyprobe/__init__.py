"""skyprobe - wait for cloud resources to actually be ready.

Issue a mutation against Compute Engine and block until the eventually
consistent state catches up.

Example:

    import skyprobe
    from skyprobe.providers.gce.instances import vm_from_template

    async with skyprobe.connect() as gce:
        vm = vm_from_template(template, zone="asia-east1-b")
        await gce.new_vm(gce.project, "asia-east1-b", vm)     # until RUNNING
        await gce.stop_vm(gce.coordinates(vm.name))           # until TERMINATED

The framework underneath is provider independent:

    outcome = await skyprobe.watch_until(
        accessor, coords, lambda s: s.status == "READY", interval=5, timeout=180,
    )
"""

from skyprobe.core.exceptions import (
    ConfigurationError,
    GceError,
    MutationFailedError,
    SkyprobeError,
    SnapshotNotFoundError,
    VerificationFailedError,
    WatchTimeoutError,
)
from skyprobe.flow import (
    confirm,
    confirm_async,
    retry_until_success,
    retry_until_success_async,
)
from skyprobe.module import SkyprobeModule, connect
from skyprobe.observability import LogConfig, setup_logging, teardown_logging
from skyprobe.orchestration import (
    ConditionChecker,
    WatchChecker,
    create_and_wait,
    transition_and_verify,
)
from skyprobe.providers.gce import GCE
from skyprobe.selection import attach_tags, detach_tags, latest_snapshot
from skyprobe.types import ResourceCoordinates
from skyprobe.wait import Watch, WatchHandle, WatchOutcome, watch_until

__all__ = [
    # Errors
    "ConfigurationError",
    "GceError",
    "MutationFailedError",
    "SkyprobeError",
    "SnapshotNotFoundError",
    "VerificationFailedError",
    "WatchTimeoutError",
    # Confirmation / retry
    "confirm",
    "confirm_async",
    "retry_until_success",
    "retry_until_success_async",
    # Polling
    "Watch",
    "WatchHandle",
    "WatchOutcome",
    "watch_until",
    # Orchestration
    "ConditionChecker",
    "WatchChecker",
    "create_and_wait",
    "transition_and_verify",
    # Selection
    "attach_tags",
    "detach_tags",
    "latest_snapshot",
    # Compute Engine
    "GCE",
    "ResourceCoordinates",
    "SkyprobeModule",
    "connect",
    # Logging
    "LogConfig",
    "setup_logging",
    "teardown_logging",
]
