"""
Display identification and mode selection.

Each physical display gets a label derived from its EDID and a uid derived
from that label. The uid keys the per-display mode preference, so it has to
come out the same on every run for the same display.
"""

import logging
import re
from typing import Callable, Dict, Optional

from tegrasettings.core.errors import ServiceUnavailable
from tegrasettings.platform.edid import EdidInfo
from tegrasettings.platform.hal import FIRST_CONNECTOR, LAST_CONNECTOR, Connector

logger = logging.getLogger(__name__)

INTERNAL_PANEL_LABEL = "Internal Panel"
UNKNOWN_LABEL = "Unknown"
MODE_PREFERENCE_PREFIX = "mode_"
DEFAULT_MODE_INDEX = 0

_MODE_INDEX_RE = re.compile(r"[+-]?[0-9]+")

EdidQuery = Callable[[int], EdidInfo]
PreferenceLookup = Callable[[str], Optional[str]]
ModeSetter = Callable[[int, int], None]
RotationRefresher = Callable[[bool, bool], None]


def string_hash(text: str) -> int:
    """
    32-bit polynomial string hash (multiplier 31) over UTF-16 code units.

    Produces the same signed value as java.lang.String.hashCode, which is
    what existing preference files were keyed with.
    """
    h = 0
    units = text.encode("utf-16-be", "surrogatepass")
    for i in range(0, len(units), 2):
        h = (31 * h + ((units[i] << 8) | units[i + 1])) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def mode_preference_key(uid: str) -> str:
    return MODE_PREFERENCE_PREFIX + uid


class DisplayIdentityResolver:
    """
    Derives display labels and uids and resolves per-display mode choices.

    Stateless: every call works from freshly queried EDID data.
    """

    @staticmethod
    def compute_label(edid: EdidInfo, connector: int) -> str:
        monitor_name = edid.monitor_name or ""
        manufacturer_id = edid.manufacturer_id or ""

        if monitor_name:
            if manufacturer_id:
                return f"{manufacturer_id} - {monitor_name}"
            return monitor_name
        if connector == Connector.PANEL:
            # Most internal panels do not report a monitor name
            return INTERNAL_PANEL_LABEL
        return UNKNOWN_LABEL

    @classmethod
    def compute_uid(cls, edid: EdidInfo, connector: int) -> str:
        return str(string_hash(cls.compute_label(edid, connector)))

    @classmethod
    def build_uid_map(cls, query_edid: EdidQuery) -> Dict[str, int]:
        """
        Map uid -> connector for every connector that answers an EDID query.

        Connectors whose query fails are left out; an empty map means no
        display was found.
        """
        uid_map: Dict[str, int] = {}
        for connector in range(FIRST_CONNECTOR, LAST_CONNECTOR + 1):
            try:
                edid = query_edid(connector)
            except ServiceUnavailable as e:
                logger.debug(f"Skipping connector {connector}: {e}")
                continue
            uid_map[cls.compute_uid(edid, connector)] = connector
        return uid_map

    @classmethod
    def resolve_mode_index(
        cls,
        connector: int,
        query_edid: EdidQuery,
        preference_lookup: PreferenceLookup,
    ) -> int:
        """
        Look up the stored mode index for the display on `connector`.

        The internal panel always uses the default mode. Missing or malformed
        preferences read as the default mode.

        Raises:
            ServiceUnavailable: The EDID query failed; no mode should be applied.
        """
        if connector == Connector.PANEL:
            return DEFAULT_MODE_INDEX

        uid = cls.compute_uid(query_edid(connector), connector)
        value = preference_lookup(mode_preference_key(uid))
        if value is None:
            return DEFAULT_MODE_INDEX

        if isinstance(value, str) and _MODE_INDEX_RE.fullmatch(value):
            index = int(value)
            if -2**31 <= index < 2**31:
                return index
        logger.warning(f"Ignoring malformed mode preference for display {uid}: {value!r}")
        return DEFAULT_MODE_INDEX

    @staticmethod
    def apply_mode(
        connector: int,
        index: int,
        mode_setter: ModeSetter,
        rotation_refresher: RotationRefresher,
    ) -> bool:
        """
        Set a mode and force the display layout to update.

        Returns:
            False when the mode could not be set. The layout refresh is then
            skipped and nothing is retried.
        """
        try:
            mode_setter(connector, index)
        except ServiceUnavailable as e:
            logger.error(f"Failed to set mode {index} on display {connector}: {e}")
            return False

        rotation_refresher(True, True)
        return True
