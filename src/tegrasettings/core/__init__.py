"""
Core tegrasettings components.

This module contains configuration and the error types.
"""

from tegrasettings.core.config import Config, load_config
from tegrasettings.core.errors import QueryFailed, ServiceUnavailable, TegraSettingsError

__all__ = [
    "Config",
    "load_config",
    "QueryFailed",
    "ServiceUnavailable",
    "TegraSettingsError",
]
