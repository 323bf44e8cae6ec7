"""GceManager against in-memory Compute Engine clients."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

compute_v1 = pytest.importorskip("google.cloud.compute_v1")

from skyprobe.core.exceptions import (  # noqa: E402
    ConfigurationError,
    GceError,
    MutationFailedError,
    SnapshotNotFoundError,
    VerificationFailedError,
    WatchTimeoutError,
)
from skyprobe.providers.gce.config import GCE  # noqa: E402
from skyprobe.providers.gce.manager import GceManager, _resolve_project  # noqa: E402
from skyprobe.types import ResourceCoordinates  # noqa: E402

FAST = GCE(
    project="proj",
    zone="asia-east1-b",
    vm_running_timeout=1.0,
    vm_stopping_timeout=1.0,
    disk_creation_timeout=1.0,
    vm_poll_interval=0.01,
    disk_poll_interval=0.01,
)

COORDS = ResourceCoordinates("proj", "asia-east1-b", "vm-1")


def scripted(*steps: object):
    """Client method replaying ``steps``; the last one repeats forever."""
    remaining = list(steps)

    def call(request: object) -> object:
        step = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(step, Exception):
            raise step
        return SimpleNamespace(status=step)

    return call


@pytest.fixture
def clients() -> SimpleNamespace:
    return SimpleNamespace(
        instances=MagicMock(),
        disks=MagicMock(),
        images=MagicMock(),
        snapshots=MagicMock(),
        groups=MagicMock(),
    )


@pytest.fixture
def manager(clients: SimpleNamespace):
    mgr = GceManager(
        config=FAST,
        instances_client=clients.instances,
        disks_client=clients.disks,
        images_client=clients.images,
        snapshots_client=clients.snapshots,
        instance_groups_client=clients.groups,
        project="proj",
        thread_pool=ThreadPoolExecutor(max_workers=2),
    )
    yield mgr
    mgr.close()


def sent(method: MagicMock) -> object:
    return method.call_args.kwargs["request"]


class TestNewVm:
    @pytest.mark.asyncio
    async def test_waits_until_running(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.insert.return_value = "insert-op"
        clients.instances.get.side_effect = scripted(
            RuntimeError("404 not found"), "PROVISIONING", "STAGING", "RUNNING",
        )

        vm = compute_v1.Instance(name="vm-1")
        result = await manager.new_vm("proj", "asia-east1-b", vm)

        assert result == "insert-op"
        assert clients.instances.get.call_count == 4
        request = sent(clients.instances.insert)
        assert request.project == "proj"
        assert request.instance_resource.name == "vm-1"
        assert sent(clients.instances.get).instance == "vm-1"

    @pytest.mark.asyncio
    async def test_rejected_insert_never_polls(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.insert.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(MutationFailedError, match="quota exceeded") as exc_info:
            await manager.new_vm("proj", "asia-east1-b", compute_v1.Instance(name="vm-1"))

        assert isinstance(exc_info.value.__cause__, GceError)
        clients.instances.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout(self, clients: SimpleNamespace):
        clients.instances.get.side_effect = scripted("STAGING")
        mgr = GceManager(
            config=GCE(project="proj", vm_running_timeout=0.05, vm_poll_interval=0.01),
            instances_client=clients.instances,
            disks_client=clients.disks,
            images_client=clients.images,
            snapshots_client=clients.snapshots,
            instance_groups_client=clients.groups,
            project="proj",
            thread_pool=ThreadPoolExecutor(max_workers=1),
        )
        try:
            with pytest.raises(WatchTimeoutError, match="vm-1"):
                await mgr.new_vm("proj", "asia-east1-b", compute_v1.Instance(name="vm-1"))
        finally:
            mgr.close()


class TestTransitions:
    @pytest.mark.asyncio
    async def test_stop_waits_for_terminated(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.stop.return_value = "stop-op"
        clients.instances.get.side_effect = scripted("RUNNING", "STOPPING", "TERMINATED")

        assert await manager.stop_vm(COORDS) == "stop-op"
        assert clients.instances.get.call_count == 3
        assert sent(clients.instances.stop).instance == "vm-1"

    @pytest.mark.asyncio
    async def test_start_waits_for_running(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.start.return_value = "start-op"
        clients.instances.get.side_effect = scripted("STAGING", "RUNNING")

        assert await manager.start_vm(COORDS) == "start-op"

    @pytest.mark.asyncio
    async def test_custom_checker_rejects(self, manager: GceManager, clients: SimpleNamespace):
        class Never:
            async def check(self, coords: ResourceCoordinates) -> bool:
                return False

        with pytest.raises(VerificationFailedError, match="vm-1"):
            await manager.stop_vm(COORDS, checker=Never())
        clients.instances.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_stop_skips_checker(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.stop.side_effect = RuntimeError("forbidden")

        with pytest.raises(MutationFailedError):
            await manager.stop_vm(COORDS)
        clients.instances.get.assert_not_called()


class TestPlainCalls:
    @pytest.mark.asyncio
    async def test_set_machine_type_url(self, manager: GceManager, clients: SimpleNamespace):
        await manager.set_machine_type(COORDS, "f1-micro")

        request = sent(clients.instances.set_machine_type)
        assert request.instances_set_machine_type_request_resource.machine_type == (
            "zones/asia-east1-b/machineTypes/f1-micro"
        )

    @pytest.mark.asyncio
    async def test_client_error_wrapped(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.delete.side_effect = RuntimeError("boom")

        with pytest.raises(GceError, match="GCE operation fails: boom"):
            await manager.delete_vm(COORDS)

    @pytest.mark.asyncio
    async def test_list_vms_materializes_pager(self, manager: GceManager, clients: SimpleNamespace):
        clients.instances.list.return_value = iter([SimpleNamespace(name="a"), SimpleNamespace(name="b")])

        vms = await manager.list_vms("proj", "asia-east1-b")

        assert [vm.name for vm in vms] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_add_instances_to_group(self, manager: GceManager, clients: SimpleNamespace):
        await manager.add_instances_to_group("proj", "asia-east1-b", "web", ["zones/z/instances/a"])

        request = sent(clients.groups.add_instances)
        assert request.instance_group == "web"
        resource = request.instance_groups_add_instances_request_resource
        assert [ref.instance for ref in resource.instances] == ["zones/z/instances/a"]

    def test_coordinates_default_zone(self, manager: GceManager):
        assert manager.coordinates("vm-1") == COORDS
        assert manager.coordinates("vm-1", zone="us-central1-a").zone == "us-central1-a"


class TestTags:
    @pytest.fixture
    def tagged(self, clients: SimpleNamespace) -> SimpleNamespace:
        clients.instances.get.return_value = SimpleNamespace(
            status="RUNNING",
            tags=SimpleNamespace(items=["http", "ssh", "http"], fingerprint="fp-1"),
        )
        return clients

    @pytest.mark.asyncio
    async def test_attach_appends_with_fingerprint(self, manager: GceManager, tagged: SimpleNamespace):
        await manager.attach_tags(COORDS, ["rtc-8000"])

        tags = sent(tagged.instances.set_tags).tags_resource
        assert list(tags.items) == ["http", "ssh", "http", "rtc-8000"]
        assert tags.fingerprint == "fp-1"

    @pytest.mark.asyncio
    async def test_detach_removes_all_occurrences(self, manager: GceManager, tagged: SimpleNamespace):
        await manager.detach_tags(COORDS, ["http"])

        tags = sent(tagged.instances.set_tags).tags_resource
        assert list(tags.items) == ["ssh"]
        assert tags.fingerprint == "fp-1"


class TestDisks:
    @pytest.mark.asyncio
    async def test_waits_until_ready(self, manager: GceManager, clients: SimpleNamespace):
        clients.disks.insert.return_value = "disk-op"
        clients.disks.get.side_effect = scripted(RuntimeError("404"), "CREATING", "READY")

        result = await manager.new_disk("proj", "asia-east1-b", "d-1", "global/snapshots/s", 10)

        assert result == "disk-op"
        disk = sent(clients.disks.insert).disk_resource
        assert disk.name == "d-1"
        assert disk.size_gb == 10
        assert disk.source_snapshot == "global/snapshots/s"
        assert sent(clients.disks.get).disk == "d-1"


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_latest_snapshot(self, manager: GceManager, clients: SimpleNamespace):
        clients.snapshots.list.return_value = [
            SimpleNamespace(id=1, name="p-snap-201502131103"),
            SimpleNamespace(id=3, name="p-snap-201503032021"),
            SimpleNamespace(id=2, name="p-snap-201502161516"),
        ]

        latest = await manager.latest_snapshot("proj", "p")

        assert latest.name == "p-snap-201503032021"
        assert sent(clients.snapshots.list).project == "proj"

    @pytest.mark.asyncio
    async def test_latest_snapshot_none_matching(self, manager: GceManager, clients: SimpleNamespace):
        clients.snapshots.list.return_value = [SimpleNamespace(id=1, name="other-201501010000")]

        with pytest.raises(SnapshotNotFoundError):
            await manager.latest_snapshot("proj", "p")


class TestResolveProject:
    def test_explicit_wins(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "from-env")
        assert _resolve_project("explicit") == "explicit"

    def test_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "from-env")
        assert _resolve_project(None) == "from-env"

    def test_legacy_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.setenv("GCLOUD_PROJECT", "legacy")
        assert _resolve_project(None) == "legacy"

    def test_key_file_project(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.delenv("GCLOUD_PROJECT", raising=False)
        assert _resolve_project(None, SimpleNamespace(project_id="from-key")) == "from-key"

    def test_nothing_found(self, monkeypatch: pytest.MonkeyPatch):
        import google.auth
        from google.auth.exceptions import DefaultCredentialsError

        def no_adc(*args, **kwargs):
            raise DefaultCredentialsError("no credentials")

        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.delenv("GCLOUD_PROJECT", raising=False)
        monkeypatch.setattr(google.auth, "default", no_adc)

        with pytest.raises(ConfigurationError, match="No GCP project"):
            _resolve_project(None)
