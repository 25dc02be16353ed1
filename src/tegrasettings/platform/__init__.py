"""
Platform module for tegrasettings.

Hardware access behind injectable interfaces:
- Display HAL (EDID, mode list, mode selection)
- Display layout refresh
- Sysfs control files (panel power, color mode, fan profile)
"""

from tegrasettings.platform.edid import DisplayMode, EdidInfo, PixelEncoding
from tegrasettings.platform.hal import (
    Connector,
    DisplayHalInterface,
    DrmDisplayHal,
    StubDisplayHal,
    HardwareAbstractionLayer,
)
from tegrasettings.platform.controls import DeviceControls

__all__ = [
    "DisplayMode",
    "EdidInfo",
    "PixelEncoding",
    "Connector",
    "DisplayHalInterface",
    "DrmDisplayHal",
    "StubDisplayHal",
    "HardwareAbstractionLayer",
    "DeviceControls",
]
