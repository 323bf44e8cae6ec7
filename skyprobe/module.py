"""Central DI module for skyprobe.

Binds the GCE configuration and provides a singleton GceManager built from
it.
"""

from __future__ import annotations

from injector import Binder, Injector, Module, provider, singleton

from .providers.gce.config import GCE
from .providers.gce.manager import GceManager


class SkyprobeModule(Module):
    """Module providing the Compute Engine manager.

    Usage:
        injector = Injector([SkyprobeModule(GCE(project="my-project"))])
        manager = injector.get(GceManager)
    """

    def __init__(self, config: GCE | None = None) -> None:
        self._config = config

    def configure(self, binder: Binder) -> None:
        if self._config is None:
            from .config import resolve_gce

            self._config = resolve_gce()
        binder.bind(GCE, to=self._config)

    @singleton
    @provider
    def provide_manager(self, config: GCE) -> GceManager:
        """Provide the manager as a singleton."""
        return GceManager.create(config)


def connect(config: GCE | None = None) -> GceManager:
    """Build the dependency graph and return the shared GceManager.

    Without ``config``, settings are read from skyprobe.toml and
    ~/.skyprobe/defaults.toml.
    """
    return Injector([SkyprobeModule(config)]).get(GceManager)


__all__ = [
    "SkyprobeModule",
    "connect",
]
