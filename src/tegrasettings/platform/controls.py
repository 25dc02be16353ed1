"""
Panel and fan controls.

Writes fixed ASCII values into single-value control nodes: internal panel
power, OLED panel color mode, and the fan profile. Failures are logged and
reported through the return value; nothing here raises.
"""

import logging
from typing import Optional

from tegrasettings.core.config import ControlsConfig
from tegrasettings.platform.hal import ControlFileInterface

logger = logging.getLogger(__name__)

COLOR_MODE_BUFFER_SIZE = 4


class DeviceControls:
    """Panel power, panel color mode and fan profile control."""

    def __init__(self, files: ControlFileInterface, config: Optional[ControlsConfig] = None):
        self.files = files
        self.config = config or ControlsConfig()

    def set_internal_display_state(self, on: bool) -> bool:
        """Power the internal panel on or off."""
        logger.debug(f"set_internal_display_state: {on}")
        try:
            self.files.write(self.config.panel_enable_path, b"1\n" if on else b"0\n")
        except OSError as e:
            logger.warning(f"Failed to write display state: {e}")
            return False
        return True

    def set_panel_color_mode(self, mode: str) -> bool:
        """Select the OLED panel color mode by name."""
        logger.debug(f"OLED panel mode set: {mode}")
        try:
            self.files.write(self.config.panel_color_mode_path, mode.encode("ascii", errors="replace"))
        except OSError as e:
            logger.warning(f"Failed to write color mode: {e}")
            return False
        return True

    def get_panel_color_mode(self) -> str:
        """
        Read the current OLED panel color mode.

        The node is read into a fixed 4-byte buffer, so shorter values come
        back NUL padded. Returns an empty string when the read fails.
        """
        try:
            data = self.files.read(self.config.panel_color_mode_path, COLOR_MODE_BUFFER_SIZE)
        except OSError as e:
            logger.warning(f"Failed to read color mode: {e}")
            return ""

        mode = data.ljust(COLOR_MODE_BUFFER_SIZE, b"\x00").decode("ascii", errors="replace")
        logger.debug(f"OLED mode read color mode: {mode!r}")
        return mode

    def set_fan_profile(self, profile: str) -> bool:
        """Write the fan profile to every configured fan node, in order."""
        logger.info(f"Setting fan profile: {profile}")
        data = profile.encode()
        try:
            for path in self.config.fan_profile_paths:
                self.files.write(path, data)
        except OSError as e:
            logger.warning(f"Failed to update fan profile: {e}")
            return False
        return True
