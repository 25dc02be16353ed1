"""
Display settings service for tegrasettings.

Wires the display HAL, the layout refresher and the preference store
together for the settings front end.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tegrasettings.core.config import Config
from tegrasettings.core.errors import ServiceUnavailable
from tegrasettings.display.identity import (
    DisplayIdentityResolver,
    mode_preference_key,
)
from tegrasettings.display.modes import format_color_info, format_mode_info
from tegrasettings.persistence.preferences import PreferenceStore
from tegrasettings.platform.edid import DisplayMode
from tegrasettings.platform.hal import (
    Connector,
    DisplayHalInterface,
    HardwareAbstractionLayer,
    RotationRefresherInterface,
)

logger = logging.getLogger(__name__)


@dataclass
class DisplayEntry:
    """A detected display as shown in the settings list."""
    connector: int
    label: str
    uid: str
    mode_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connector": self.connector,
            "label": self.label,
            "uid": self.uid,
            "mode_index": self.mode_index,
        }


@dataclass
class ModeEntry:
    """A selectable mode with its display strings."""
    index: int
    mode: DisplayMode
    description: str
    color: str


class DisplaySettingsService:
    """
    Stateless display settings operations.

    All collaborators are passed in; nothing is cached between calls.
    """

    def __init__(
        self,
        display_hal: DisplayHalInterface,
        rotation: RotationRefresherInterface,
        preferences: PreferenceStore,
    ):
        self.display_hal = display_hal
        self.rotation = rotation
        self.preferences = preferences
        self.resolver = DisplayIdentityResolver()

    def _lookup(self, key: str) -> Optional[str]:
        return self.preferences.get(key)

    def list_displays(self) -> List[DisplayEntry]:
        """List every connected display with its label, uid and stored mode."""
        uid_map = self.resolver.build_uid_map(self.display_hal.edid_get_info)
        entries = []
        for uid, connector in sorted(uid_map.items(), key=lambda item: item[1]):
            try:
                edid = self.display_hal.edid_get_info(connector)
            except ServiceUnavailable as e:
                logger.warning(f"Display {connector} disappeared while listing: {e}")
                continue
            index = self.resolver.resolve_mode_index(connector, lambda _: edid, self._lookup)
            entries.append(DisplayEntry(
                connector=connector,
                label=self.resolver.compute_label(edid, connector),
                uid=uid,
                mode_index=index,
            ))
        return entries

    def list_modes(self, connector: int) -> List[ModeEntry]:
        """
        List the modes of a connector.

        Raises:
            ServiceUnavailable: The display HAL could not be queried.
        """
        return [
            ModeEntry(index=i, mode=mode, description=format_mode_info(mode), color=format_color_info(mode))
            for i, mode in enumerate(self.display_hal.mode_get_list(connector))
        ]

    def set_display_mode(self, connector: int) -> bool:
        """Apply the stored mode preference of the display on `connector`."""
        try:
            index = self.resolver.resolve_mode_index(connector, self.display_hal.edid_get_info, self._lookup)
        except ServiceUnavailable as e:
            logger.error(f"Failed to set mode on display {connector}: {e}")
            return False

        return self.resolver.apply_mode(
            connector,
            index,
            self.display_hal.mode_set_index,
            self.rotation.update_rotation,
        )

    def select_mode(self, connector: int, index: int) -> bool:
        """
        Remember `index` as the mode of the display on `connector` and apply it.

        The internal panel always runs its default mode, so nothing is stored
        for it. An index outside the display's mode list is rejected before
        anything is stored.
        """
        if connector != Connector.PANEL:
            try:
                edid = self.display_hal.edid_get_info(connector)
                mode_count = len(self.display_hal.mode_get_list(connector))
            except ServiceUnavailable as e:
                logger.error(f"Failed to select mode on display {connector}: {e}")
                return False
            uid = self.resolver.compute_uid(edid, connector)
            if not 0 <= index < mode_count:
                logger.error(f"Mode index {index} out of range for display {uid} ({mode_count} modes)")
                return False
            try:
                self.preferences.set(mode_preference_key(uid), str(index))
            except OSError as e:
                logger.error(f"Failed to store mode for display {uid}: {e}")
                return False
            logger.info(f"Stored mode {index} for display {uid} on connector {connector}")

        return self.set_display_mode(connector)

    def refresh_all(self) -> Dict[int, bool]:
        """Re-apply the stored mode on every connected display."""
        results = {}
        for connector in sorted(self.resolver.build_uid_map(self.display_hal.edid_get_info).values()):
            results[connector] = self.set_display_mode(connector)
        return results


def create_display_service(
    config: Optional[Config] = None,
    hal: Optional[HardwareAbstractionLayer] = None,
) -> DisplaySettingsService:
    """
    Create a display settings service from configuration.

    Args:
        config: Loaded configuration; defaults are used when omitted
        hal: Pre-built HAL, built from `config` when omitted
    """
    config = config or Config()
    hal = hal or HardwareAbstractionLayer(config)
    return DisplaySettingsService(
        display_hal=hal.display,
        rotation=hal.rotation,
        preferences=PreferenceStore(config.preferences.path),
    )
