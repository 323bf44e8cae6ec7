"""Logging configuration for skyprobe.

Logging is silent by default (library behavior). Applications opt in by
calling :func:`setup_logging` with a :class:`LogConfig`, and undo it with
:func:`teardown_logging`.

Example:
    from skyprobe.observability import LogConfig, setup_logging, teardown_logging

    handler_ids = setup_logging(LogConfig(level="TRACE", console=True))
    try:
        await manager.new_vm(project, zone, vm)
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .logger import ROOT_LOGGER_NAME, logger

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum level for the console sink.
        file: Path to the log file. None disables file output.
        console: Whether to log to stderr.
        max_bytes: Rotate the log file after this many bytes.
        retention: Number of rotated files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = ".skyprobe/skyprobe.log"
    console: bool = False
    max_bytes: int = 50 * 1024 * 1024
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Attach the configured sinks and return their handler ids."""
    logger.remove()
    logger.enable(ROOT_LOGGER_NAME)
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(sys.stderr, level=config.level))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(
            logger.add(
                config.file,
                level="TRACE",
                max_bytes=config.max_bytes,
                backup_count=config.retention,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers added by :func:`setup_logging` and silence the library."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable(ROOT_LOGGER_NAME)
