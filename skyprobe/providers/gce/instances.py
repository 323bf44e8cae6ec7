"""Pure helpers over Compute Engine resources (no API calls)."""

from __future__ import annotations

import re
from string import Template

from skyprobe.observability.logger import logger
from skyprobe.types import ResourceCoordinates

log = logger.bind(provider="gce")

MISSING = "missing"

_ZONAL_RESOURCE = re.compile(
    r"projects/(?P<project>[^/]+)/zones/(?P<zone>[^/]+)/[a-zA-Z]+/(?P<name>[^/]+)$"
)
_GO_ZONE = re.compile(r"\{\{\s*\.Zone\s*\}\}")


def last_segment(src: str, separator: str = "/") -> str:
    """Return the text after the last ``separator`` (the whole string if absent)."""
    return src.rsplit(separator, 1)[-1]


def machine_type_url(zone: str, machine_type: str) -> str:
    """Partial URL accepted by ``setMachineType`` (``zones/{zone}/machineTypes/{type}``)."""
    return f"zones/{zone}/machineTypes/{machine_type}"


def patch_machine_type(machine_type: str, target_type: str) -> str:
    """Swap the machine type name at the end of a machine type URL.

    >>> patch_machine_type("zones/asia-east1-b/machineTypes/n1-standard-1", "f1-micro")
    'zones/asia-east1-b/machineTypes/f1-micro'
    """
    head, sep, _ = machine_type.rpartition("/")
    return f"{head}{sep}{target_type}"


def nat_ip(vm: object | None) -> str:
    """External (NAT) IP of the first access config of the first interface."""
    if vm is None:
        return MISSING
    interfaces = getattr(vm, "network_interfaces", None) or []
    configs = (getattr(interfaces[0], "access_configs", None) or []) if interfaces else []
    ip = getattr(configs[0], "nat_i_p", "") if configs else ""
    log.trace("Got NAT IP: vm={vm}, ip={ip}", vm=getattr(vm, "name", "?"), ip=ip)
    return ip or MISSING


def network_ip(vm: object | None) -> str:
    """Internal IP of the first network interface."""
    if vm is None:
        return MISSING
    interfaces = getattr(vm, "network_interfaces", None) or []
    ip = getattr(interfaces[0], "network_i_p", "") if interfaces else ""
    log.trace("Got network IP: vm={vm}, ip={ip}", vm=getattr(vm, "name", "?"), ip=ip)
    return ip or MISSING


def snapshot_of_disk(disk: object) -> str:
    """Name of the snapshot a disk was created from."""
    return last_segment(getattr(disk, "source_snapshot", ""))


def coordinates_from_url(url: str) -> ResourceCoordinates:
    """Parse a zonal resource (self-)link into coordinates.

    Accepts full URLs (``https://www.googleapis.com/compute/v1/projects/...``)
    and partial ones (``projects/p/zones/z/disks/d``).

    Raises:
        ValueError: The URL does not name a zonal resource.
    """
    match = _ZONAL_RESOURCE.search(url)
    if match is None:
        raise ValueError(f"Not a zonal resource URL: {url}")
    return ResourceCoordinates(**match.groupdict())


def vm_from_template(template: str, zone: str) -> object:
    """Build a ``compute_v1.Instance`` from a JSON template.

    The template is the REST representation of an instance in which zone
    placeholders are replaced by ``zone`` before parsing. Both ``${zone}`` and
    the Go text/template form ``{{.Zone}}`` are accepted, so templates written
    for Go tooling work unchanged.
    """
    from google.cloud import compute_v1  # type: ignore[reportMissingImports]

    rendered = Template(_GO_ZONE.sub("${zone}", template)).substitute(zone=zone)
    return compute_v1.Instance.from_json(rendered, ignore_unknown_fields=True)
