"""Observability for skyprobe: the bound logger and its configuration."""

from .logger import TRACE, logger
from .logging import LogConfig, LogLevel, setup_logging, teardown_logging

__all__ = [
    "TRACE",
    "LogConfig",
    "LogLevel",
    "logger",
    "setup_logging",
    "teardown_logging",
]
