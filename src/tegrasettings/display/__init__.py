"""
Display module for tegrasettings.

Provides display identification and per-display mode selection.
"""

from tegrasettings.display.identity import DisplayIdentityResolver
from tegrasettings.display.service import DisplaySettingsService, create_display_service

__all__ = [
    "DisplayIdentityResolver",
    "DisplaySettingsService",
    "create_display_service",
]
