"""Compute Engine adapter for skyprobe.

Only the config class is imported eagerly. ``GceManager`` is resolved on
first access, so ``from skyprobe.providers.gce import GceManager`` and
``import *`` both work.

Environment Variables:
    GOOGLE_CLOUD_PROJECT: GCP project ID (used when no project is configured)
    GOOGLE_APPLICATION_CREDENTIALS: Path to service account key (optional)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import GCE

if TYPE_CHECKING:
    from .manager import GceManager


def __getattr__(name: str) -> Any:
    if name == "GceManager":
        from .manager import GceManager

        return GceManager
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GCE",
    "GceManager",
]
