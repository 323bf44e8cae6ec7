from .exceptions import (
    ConfigurationError,
    GceError,
    MutationFailedError,
    SkyprobeError,
    SnapshotNotFoundError,
    VerificationFailedError,
    WatchTimeoutError,
)

__all__ = [
    "ConfigurationError",
    "GceError",
    "MutationFailedError",
    "SkyprobeError",
    "SnapshotNotFoundError",
    "VerificationFailedError",
    "WatchTimeoutError",
]
