"""Custom exception hierarchy for skyprobe.

All skyprobe-specific exceptions inherit from SkyprobeError, enabling
users to catch all skyprobe exceptions with a single except clause.
"""

from __future__ import annotations


class SkyprobeError(Exception):
    """Base exception for all skyprobe errors."""


class ConfigurationError(SkyprobeError):
    """Raised for invalid configuration or missing required settings."""


class MutationFailedError(SkyprobeError):
    """Raised when the request that starts a long-running operation fails.

    The mutation is never retried; the original error is chained as
    ``__cause__``.
    """

    def __init__(self, resource: str, reason: str = "unknown") -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"Mutation of {resource} failed: {reason}")


class WatchTimeoutError(SkyprobeError, TimeoutError):
    """Raised when a watched resource does not reach its target state in time."""

    def __init__(self, resource: str, timeout: float) -> None:
        self.resource = resource
        self.timeout = timeout
        super().__init__(f"Timeout waiting for {resource} after {timeout:.1f}s")


class VerificationFailedError(SkyprobeError):
    """Raised when a condition checker rejects a transition without raising."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"Transition of {resource} could not be verified")


class SnapshotNotFoundError(SkyprobeError, LookupError):
    """Raised when no snapshot matches the requested prefix."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        super().__init__(f"No snapshot found matching '{prefix}'")


class GceError(SkyprobeError):
    """Raised when a plain Compute Engine request fails."""

    def __init__(self, message: str) -> None:
        super().__init__(f"GCE operation fails: {message}")
