"""Compute Engine manager.

Wraps the synchronous ``google.cloud.compute_v1`` clients, dispatching every
call to a dedicated thread pool. Plain requests (get, list, delete, ...) are a
single call. Long-running operations go through the mutate-then-wait
orchestration in :mod:`skyprobe.orchestration`:

- ``new_vm`` / ``new_disk`` insert, then watch until RUNNING / READY.
- ``stop_vm`` / ``start_vm`` issue the transition, then verify it with a
  :class:`~skyprobe.orchestration.ConditionChecker`.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from skyprobe import selection
from skyprobe.core.exceptions import ConfigurationError, GceError
from skyprobe.observability.logger import logger
from skyprobe.orchestration import ConditionChecker, create_and_wait, transition_and_verify
from skyprobe.types import ResourceCoordinates

from .config import GCE
from .instances import machine_type_url
from .watchers import (
    disk_ready_watch,
    vm_running_checker,
    vm_running_watch,
    vm_stopped_checker,
)

log = logger.bind(provider="gce")

COMPUTE_SCOPE = "https://www.googleapis.com/auth/compute"

type TagTransform = Callable[[Sequence[str], Sequence[str]], list[str]]


class GceManager:
    """Low-level access to Compute Engine. Holds only config + sync clients."""

    def __init__(
        self,
        config: GCE,
        instances_client: object,
        disks_client: object,
        images_client: object,
        snapshots_client: object,
        instance_groups_client: object,
        project: str,
        thread_pool: ThreadPoolExecutor,
    ) -> None:
        self.config = config
        self.project = project
        self._instances = instances_client
        self._disks = disks_client
        self._images = images_client
        self._snapshots = snapshots_client
        self._groups = instance_groups_client
        self._pool = thread_pool

    @classmethod
    def create(cls, config: GCE) -> GceManager:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        credentials = _load_credentials(config.credentials_file)
        project = _resolve_project(config.project, credentials)
        log.info("Resolved GCP project: {project}", project=project)

        thread_pool = ThreadPoolExecutor(
            max_workers=config.thread_pool_size,
            thread_name_prefix="gce-io",
        )

        return cls(
            config=config,
            instances_client=compute_v1.InstancesClient(credentials=credentials),
            disks_client=compute_v1.DisksClient(credentials=credentials),
            images_client=compute_v1.ImagesClient(credentials=credentials),
            snapshots_client=compute_v1.SnapshotsClient(credentials=credentials),
            instance_groups_client=compute_v1.InstanceGroupsClient(credentials=credentials),
            project=project,
            thread_pool=thread_pool,
        )

    def close(self) -> None:
        self._pool.shutdown(wait=False)

    async def __aenter__(self) -> GceManager:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()

    def coordinates(self, name: str, *, zone: str | None = None) -> ResourceCoordinates:
        """Coordinates of ``name`` in the default project and zone."""
        return ResourceCoordinates(self.project, zone or self.config.zone, name)

    async def _run[T](self, fn: Callable[..., T], *args: object, **kwargs: object) -> T:
        loop = asyncio.get_running_loop()
        if kwargs:
            return await loop.run_in_executor(
                self._pool, lambda: fn(*args, **kwargs),
            )
        return await loop.run_in_executor(self._pool, fn, *args)

    async def _call[T](self, fn: Callable[..., T], /, **kwargs: object) -> T:
        try:
            return await self._run(fn, **kwargs)
        except Exception as e:
            raise GceError(str(e)) from e

    async def _list(self, fn: Callable[..., Iterable[Any]], /, **kwargs: object) -> list[Any]:
        return await self._call(lambda **kw: list(fn(**kw)), **kwargs)

    # -------------------------------------------------------------------------
    # Instances
    # -------------------------------------------------------------------------

    async def new_vm(self, project: str, zone: str, vm: Any) -> object:
        """Insert ``vm`` and block until its status is RUNNING.

        Raises:
            MutationFailedError: The insert request failed.
            WatchTimeoutError: The VM was not RUNNING within ``vm_running_timeout``.
        """
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("New VM: project={project}, zone={zone}", project=project, zone=zone)
        coords = ResourceCoordinates(project, zone, vm.name)
        return await create_and_wait(
            lambda: self._call(
                self._instances.insert,  # type: ignore[union-attr]
                request=compute_v1.InsertInstanceRequest(
                    project=project, zone=zone, instance_resource=vm,
                ),
            ),
            vm_running_watch(self, coords),
        )

    async def get_vm(self, coords: ResourceCoordinates) -> Any:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Get VM: {coords}", coords=coords)
        return await self._call(
            self._instances.get,  # type: ignore[union-attr]
            request=compute_v1.GetInstanceRequest(
                project=coords.project, zone=coords.zone, instance=coords.name,
            ),
        )

    async def delete_vm(self, coords: ResourceCoordinates) -> object:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Delete VM: {coords}", coords=coords)
        return await self._call(
            self._instances.delete,  # type: ignore[union-attr]
            request=compute_v1.DeleteInstanceRequest(
                project=coords.project, zone=coords.zone, instance=coords.name,
            ),
        )

    async def stop_vm(
        self,
        coords: ResourceCoordinates,
        checker: ConditionChecker[ResourceCoordinates] | None = None,
    ) -> object:
        """Stop a VM and verify it with ``checker`` (default: wait for TERMINATED)."""
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Stop VM: {coords}", coords=coords)
        return await transition_and_verify(
            lambda: self._call(
                self._instances.stop,  # type: ignore[union-attr]
                request=compute_v1.StopInstanceRequest(
                    project=coords.project, zone=coords.zone, instance=coords.name,
                ),
            ),
            coords,
            checker or vm_stopped_checker(self),
            resource=f"VM {coords}",
        )

    async def start_vm(
        self,
        coords: ResourceCoordinates,
        checker: ConditionChecker[ResourceCoordinates] | None = None,
    ) -> object:
        """Start a VM and verify it with ``checker`` (default: wait for RUNNING)."""
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Start VM: {coords}", coords=coords)
        return await transition_and_verify(
            lambda: self._call(
                self._instances.start,  # type: ignore[union-attr]
                request=compute_v1.StartInstanceRequest(
                    project=coords.project, zone=coords.zone, instance=coords.name,
                ),
            ),
            coords,
            checker or vm_running_checker(self),
            resource=f"VM {coords}",
        )

    async def set_machine_type(self, coords: ResourceCoordinates, machine_type: str) -> object:
        """Change the machine type of a stopped VM."""
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.debug(
            "Set machine type: {coords}, type={mt}", coords=coords, mt=machine_type,
        )
        return await self._call(
            self._instances.set_machine_type,  # type: ignore[union-attr]
            request=compute_v1.SetMachineTypeInstanceRequest(
                project=coords.project,
                zone=coords.zone,
                instance=coords.name,
                instances_set_machine_type_request_resource=compute_v1.InstancesSetMachineTypeRequest(
                    machine_type=machine_type_url(coords.zone, machine_type),
                ),
            ),
        )

    async def reset_vm(self, coords: ResourceCoordinates) -> object:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.debug("Reset VM: {coords}", coords=coords)
        return await self._call(
            self._instances.reset,  # type: ignore[union-attr]
            request=compute_v1.ResetInstanceRequest(
                project=coords.project, zone=coords.zone, instance=coords.name,
            ),
        )

    async def list_vms(self, project: str, zone: str) -> list[Any]:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("List VMs: project={project}, zone={zone}", project=project, zone=zone)
        return await self._list(
            self._instances.list,  # type: ignore[union-attr]
            request=compute_v1.ListInstancesRequest(project=project, zone=zone),
        )

    async def list_images(self, project: str) -> list[Any]:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("List images: project={project}", project=project)
        return await self._list(
            self._images.list,  # type: ignore[union-attr]
            request=compute_v1.ListImagesRequest(project=project),
        )

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    async def attach_tags(self, coords: ResourceCoordinates, tags: Sequence[str]) -> object:
        """Append ``tags`` to the VM's network tags (duplicates are kept)."""
        log.trace("Attach tags: {coords}, tags={tags}", coords=coords, tags=list(tags))
        return await self._adjust_tags(coords, tags, selection.attach_tags)

    async def detach_tags(self, coords: ResourceCoordinates, tags: Sequence[str]) -> object:
        """Remove every occurrence of ``tags`` from the VM's network tags."""
        log.trace("Detach tags: {coords}, tags={tags}", coords=coords, tags=list(tags))
        return await self._adjust_tags(coords, tags, selection.detach_tags)

    async def _adjust_tags(
        self,
        coords: ResourceCoordinates,
        tags: Sequence[str],
        transform: TagTransform,
    ) -> object:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        vm = await self.get_vm(coords)
        current = vm.tags
        items = transform(list(current.items), list(tags))

        return await self._call(
            self._instances.set_tags,  # type: ignore[union-attr]
            request=compute_v1.SetTagsInstanceRequest(
                project=coords.project,
                zone=coords.zone,
                instance=coords.name,
                tags_resource=compute_v1.Tags(items=items, fingerprint=current.fingerprint),
            ),
        )

    # -------------------------------------------------------------------------
    # Disks
    # -------------------------------------------------------------------------

    async def new_disk(
        self,
        project: str,
        zone: str,
        name: str,
        source_snapshot: str,
        size_gb: int,
    ) -> object:
        """Create a disk from ``source_snapshot`` and block until it is READY.

        Raises:
            MutationFailedError: The insert request failed.
            WatchTimeoutError: The disk was not READY within ``disk_creation_timeout``.
        """
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace(
            "New disk: project={project}, zone={zone}, name={name}, snapshot={snap}",
            project=project, zone=zone, name=name, snap=source_snapshot,
        )
        disk = compute_v1.Disk(name=name, size_gb=size_gb, source_snapshot=source_snapshot)
        coords = ResourceCoordinates(project, zone, name)
        return await create_and_wait(
            lambda: self._call(
                self._disks.insert,  # type: ignore[union-attr]
                request=compute_v1.InsertDiskRequest(
                    project=project, zone=zone, disk_resource=disk,
                ),
            ),
            disk_ready_watch(self, coords),
        )

    async def get_disk(self, coords: ResourceCoordinates) -> Any:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Get disk: {coords}", coords=coords)
        return await self._call(
            self._disks.get,  # type: ignore[union-attr]
            request=compute_v1.GetDiskRequest(
                project=coords.project, zone=coords.zone, disk=coords.name,
            ),
        )

    async def delete_disk(self, coords: ResourceCoordinates) -> object:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Delete disk: {coords}", coords=coords)
        return await self._call(
            self._disks.delete,  # type: ignore[union-attr]
            request=compute_v1.DeleteDiskRequest(
                project=coords.project, zone=coords.zone, disk=coords.name,
            ),
        )

    async def list_disks(self, project: str, zone: str) -> list[Any]:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("List disks: project={project}, zone={zone}", project=project, zone=zone)
        return await self._list(
            self._disks.list,  # type: ignore[union-attr]
            request=compute_v1.ListDisksRequest(project=project, zone=zone),
        )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    async def get_snapshots(self, project: str) -> list[Any]:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Get snapshots: project={project}", project=project)
        snapshots = await self._list(
            self._snapshots.list,  # type: ignore[union-attr]
            request=compute_v1.ListSnapshotsRequest(project=project),
        )
        for snapshot in snapshots:
            log.trace("Snapshot: id={id}, name={name}", id=snapshot.id, name=snapshot.name)
        return snapshots

    async def get_snapshot(self, project: str, name: str) -> Any:
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace("Get snapshot: project={project}, snapshot={name}", project=project, name=name)
        return await self._call(
            self._snapshots.get,  # type: ignore[union-attr]
            request=compute_v1.GetSnapshotRequest(project=project, snapshot=name),
        )

    async def latest_snapshot(self, project: str, prefix: str) -> Any:
        """Latest snapshot of ``project`` whose name contains ``prefix``.

        Raises:
            SnapshotNotFoundError: No snapshot matched.
        """
        latest = selection.latest_snapshot(prefix, await self.get_snapshots(project))
        log.trace("Latest snapshot found: name={name}", name=latest.name)
        return latest

    # -------------------------------------------------------------------------
    # Instance groups
    # -------------------------------------------------------------------------

    async def add_instances_to_group(
        self,
        project: str,
        zone: str,
        group: str,
        instances: Sequence[str],
    ) -> object:
        """Add instances (by URL) to an unmanaged instance group."""
        from google.cloud import compute_v1  # type: ignore[reportMissingImports]

        log.trace(
            "Add instances to group: project={project}, zone={zone}, group={group}, instances={instances}",
            project=project, zone=zone, group=group, instances=list(instances),
        )
        return await self._call(
            self._groups.add_instances,  # type: ignore[union-attr]
            request=compute_v1.AddInstancesInstanceGroupRequest(
                project=project,
                zone=zone,
                instance_group=group,
                instance_groups_add_instances_request_resource=compute_v1.InstanceGroupsAddInstancesRequest(
                    instances=[compute_v1.InstanceReference(instance=i) for i in instances],
                ),
            ),
        )


# =============================================================================
# Credentials and project resolution
# =============================================================================


def _load_credentials(credentials_file: str | None) -> Any:
    """Service account credentials from a key file, or None to use ADC."""
    if not credentials_file:
        return None

    from google.oauth2 import service_account  # type: ignore[reportMissingImports]

    try:
        return service_account.Credentials.from_service_account_file(
            credentials_file, scopes=[COMPUTE_SCOPE],
        )
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Could not load service account key '{credentials_file}': {e}"
        ) from e


def _resolve_project(explicit: str | None, credentials: Any = None) -> str:
    """Resolve GCP project: explicit > env > key file > ADC."""
    if explicit:
        return explicit

    if env_project := os.environ.get("GOOGLE_CLOUD_PROJECT"):
        return env_project

    if env_project := os.environ.get("GCLOUD_PROJECT"):
        return env_project

    if key_project := getattr(credentials, "project_id", None):
        return key_project

    import google.auth  # type: ignore[reportMissingImports]
    from google.auth.exceptions import DefaultCredentialsError  # type: ignore[reportMissingImports]

    try:
        _, project = google.auth.default()
    except DefaultCredentialsError:
        project = None
    if project:
        return project

    raise ConfigurationError(
        "No GCP project found. Set GOOGLE_CLOUD_PROJECT env var, "
        "set [gce] project in skyprobe.toml, or configure Application Default Credentials."
    )
