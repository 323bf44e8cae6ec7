"""TOML-based configuration.

Loads ~/.skyprobe/defaults.toml (global) and skyprobe.toml (project), merges
them, and builds the GCE and logging configuration objects.

Example skyprobe.toml::

    [gce]
    project = "my-project"
    zone = "asia-east1-b"
    vm_running_timeout = 300

    [logging]
    level = "DEBUG"
    console = true
"""

from __future__ import annotations

import dataclasses
import tomllib
from pathlib import Path
from typing import Any

from skyprobe.core.exceptions import ConfigurationError
from skyprobe.observability.logging import LogConfig
from skyprobe.providers.gce.config import GCE

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".skyprobe" / "defaults.toml"
PROJECT_CONFIG_NAME = "skyprobe.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("gce", {})
    merged.setdefault("logging", {})
    return merged


def _build[T](cls: type[T], section: str, raw: RawConfig) -> T:
    known = {f.name for f in dataclasses.fields(cls)}  # type: ignore[arg-type]
    if unknown := sorted(set(raw) - known):
        raise ConfigurationError(
            f"Unknown key(s) in [{section}]: {', '.join(unknown)}. "
            f"Valid: {', '.join(sorted(known))}"
        )
    try:
        return cls(**raw)
    except TypeError as e:
        raise ConfigurationError(f"Invalid [{section}] configuration: {e}") from e


def resolve_gce(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> GCE:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return _build(GCE, "gce", config["gce"])


def resolve_logging(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> LogConfig:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return _build(LogConfig, "logging", config["logging"])
