"""Compute Engine configuration.

Immutable configuration dataclass for the GCE manager.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GCE:
    """Compute Engine connection and wait-policy configuration.

    The project is auto-detected from GOOGLE_CLOUD_PROJECT, GCLOUD_PROJECT or
    Application Default Credentials when not given. A service account key
    file may be supplied instead of ADC.

    Example:
        >>> from skyprobe.providers.gce import GCE
        >>> config = GCE(zone="asia-east1-b", vm_running_timeout=300)

    Args:
        project: GCP project ID.
        zone: Default zone. Default: asia-east1-b.
        credentials_file: Path to a service account JSON key. If None, uses ADC.
        vm_running_timeout: Seconds to wait for a VM to reach RUNNING.
        vm_stopping_timeout: Seconds to wait for a VM to reach TERMINATED.
        disk_creation_timeout: Seconds to wait for a disk to reach READY.
        vm_poll_interval: Seconds between VM status polls.
        disk_poll_interval: Seconds between disk status polls.
        thread_pool_size: Workers for the blocking client calls.
    """

    project: str | None = None
    zone: str = "asia-east1-b"
    credentials_file: str | None = None
    vm_running_timeout: float = 180.0
    vm_stopping_timeout: float = 180.0
    disk_creation_timeout: float = 180.0
    vm_poll_interval: float = 10.0
    disk_poll_interval: float = 5.0
    thread_pool_size: int = 8
