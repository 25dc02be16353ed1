"""
Configuration management for tegrasettings.

Handles loading, validation, and access to configuration settings.
"""

import logging
import os
import yaml
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


# Default configuration paths
CONFIG_PATHS = [
    "/etc/tegrasettings/config.yaml",
    os.path.expanduser("~/.config/tegrasettings/config.yaml"),
    "config.yaml",
]


@dataclass
class HALConfig:
    """Display HAL configuration."""
    backend: str = "auto"  # 'drm', 'stub', 'auto'
    drm_root: str = "/sys/class/drm"
    drm_card: str = "card0"
    # Connector index -> DRM connector name
    connector_names: Dict[int, str] = field(default_factory=lambda: {
        0: "DSI-1",
        1: "HDMI-A-1",
        2: "HDMI-A-2",
    })
    # Connector index -> xrandr output name
    output_names: Dict[int, str] = field(default_factory=lambda: {
        0: "DSI-1",
        1: "HDMI-1",
        2: "HDMI-2",
    })
    command_timeout_seconds: float = 5.0


@dataclass
class ControlsConfig:
    """Sysfs control node locations."""
    panel_enable_path: str = "/sys/bus/platform/devices/tegradc.0/enable"
    panel_color_mode_path: str = "/sys/devices/50000000.host1x/tegradc.0/panel_color_mode"
    fan_profile_paths: List[str] = field(default_factory=lambda: [
        "/sys/devices/pwm-fan/fan_profile",
        "/sys/devices/thermal-fan-est/fan_profile",
    ])


@dataclass
class PreferencesConfig:
    """Preference store configuration."""
    path: str = os.path.expanduser("~/.local/share/tegrasettings/preferences.yaml")


@dataclass
class RotationConfig:
    """Display layout refresh configuration."""
    refresh_command: List[str] = field(default_factory=list)  # empty = no-op


@dataclass
class Config:
    """Main configuration class."""
    version: int = 1
    hal: HALConfig = field(default_factory=HALConfig)
    controls: ControlsConfig = field(default_factory=ControlsConfig)
    preferences: PreferencesConfig = field(default_factory=PreferencesConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "version" in data:
            config.version = data["version"]

        if "hal" in data:
            hal = dict(data["hal"])
            for key in ("connector_names", "output_names"):
                if key in hal:
                    hal[key] = {int(k): str(v) for k, v in hal[key].items()}
            config.hal = HALConfig(**hal)

        if "controls" in data:
            config.controls = ControlsConfig(**data["controls"])

        if "preferences" in data:
            config.preferences = PreferencesConfig(**data["preferences"])

        if "rotation" in data:
            config.rotation = RotationConfig(**data["rotation"])

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            "version": self.version,
            "hal": {
                "backend": self.hal.backend,
                "drm_root": self.hal.drm_root,
                "drm_card": self.hal.drm_card,
                "connector_names": dict(self.hal.connector_names),
                "output_names": dict(self.hal.output_names),
                "command_timeout_seconds": self.hal.command_timeout_seconds,
            },
            "controls": {
                "panel_enable_path": self.controls.panel_enable_path,
                "panel_color_mode_path": self.controls.panel_color_mode_path,
                "fan_profile_paths": list(self.controls.fan_profile_paths),
            },
            "preferences": {
                "path": self.preferences.path,
            },
            "rotation": {
                "refresh_command": list(self.rotation.refresh_command),
            },
        }

    def save(self, path: Optional[str] = None):
        """Save configuration to file."""
        if path is None:
            path = CONFIG_PATHS[0]

        # Ensure directory exists
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from file.

    Args:
        path: Path to config file. If None, searches default locations.

    Returns:
        Config object with loaded or default settings.
    """
    if path is not None:
        paths_to_try = [path]
    else:
        paths_to_try = CONFIG_PATHS

    for config_path in paths_to_try:
        if os.path.exists(config_path):
            try:
                with open(config_path) as f:
                    data = yaml.safe_load(f)
                    if data:
                        return Config.from_dict(data)
            except Exception as e:
                logger.warning(f"Failed to load config from {config_path}: {e}")

    # Return default config
    return Config()


def get_config_path() -> Optional[str]:
    """Get the path to the active config file."""
    for path in CONFIG_PATHS:
        if os.path.exists(path):
            return path
    return None
