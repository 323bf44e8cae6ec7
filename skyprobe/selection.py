"""Pure selection and diff helpers.

Snapshot selection relies on snapshot names embedding a fixed-width,
zero-padded timestamp (``prod-db-201503032021``) so that lexicographic order
matches chronological order. Nothing here verifies that convention.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from operator import attrgetter
from typing import Protocol

from skyprobe.core.exceptions import SnapshotNotFoundError


class Named(Protocol):
    @property
    def name(self) -> str: ...


def latest_snapshot[N: Named](prefix: str, snapshots: Iterable[N]) -> N:
    """Return the snapshot with the greatest name among those containing ``prefix``.

    The match is a plain substring test, not anchored at the start.

    Raises:
        SnapshotNotFoundError: No snapshot name contains ``prefix``.
    """
    matching = sorted((s for s in snapshots if prefix in s.name), key=attrgetter("name"))
    if not matching:
        raise SnapshotNotFoundError(prefix)
    return matching[-1]


def attach_tags(existing: Sequence[str], added: Iterable[str]) -> list[str]:
    """Append ``added`` to ``existing``.

    Tags already present are appended again; the result may hold duplicates.
    """
    return [*existing, *added]


def detach_tags(existing: Sequence[str], removed: Collection[str]) -> list[str]:
    """Drop every occurrence of every tag in ``removed``."""
    return [tag for tag in existing if tag not in removed]
