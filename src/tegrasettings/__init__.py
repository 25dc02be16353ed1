"""
tegrasettings - display, panel and fan settings for Tegra devices

Identifies attached displays from their EDID, remembers a preferred mode
per display, and drives the panel and fan control nodes.
"""

__version__ = "1.0.0"

from tegrasettings.core.config import Config, load_config
from tegrasettings.display.service import DisplaySettingsService, create_display_service
from tegrasettings.platform.controls import DeviceControls

__all__ = [
    "Config",
    "load_config",
    "DisplaySettingsService",
    "create_display_service",
    "DeviceControls",
    "__version__",
]
