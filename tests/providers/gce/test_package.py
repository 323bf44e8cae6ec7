import pytest

import skyprobe.providers.gce as gce
from skyprobe.providers.gce.manager import GceManager


class TestPackageExports:
    def test_manager_resolved_lazily(self):
        assert gce.GceManager is GceManager

    def test_star_import(self):
        namespace: dict[str, object] = {}
        exec("from skyprobe.providers.gce import *", namespace)
        assert namespace["GceManager"] is GceManager
        assert "GCE" in namespace

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError, match="NotThere"):
            gce.NotThere  # noqa: B018
