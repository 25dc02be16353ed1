"""
Error types for tegrasettings.

Hardware calls fail in two ways: the display service itself is unreachable,
or a single connector query finds nothing behind it.
"""

from typing import Optional


class TegraSettingsError(Exception):
    """Base class for all tegrasettings errors."""


class ServiceUnavailable(TegraSettingsError):
    """A display HAL or display service call failed."""

    def __init__(self, message: str, connector: Optional[int] = None):
        super().__init__(message)
        self.connector = connector


class QueryFailed(ServiceUnavailable):
    """A per-connector EDID query failed (usually nothing is connected)."""
