"""
Hardware Abstraction Layer (HAL) for tegrasettings.

Provides injectable interfaces for the hardware the settings touch:
the display HAL (EDID readout, mode enumeration and selection), the
display layout refresher, and sysfs-style control files.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from tegrasettings.core.config import Config, HALConfig
from tegrasettings.core.errors import QueryFailed, ServiceUnavailable
from tegrasettings.platform.edid import (
    DisplayMode,
    EdidInfo,
    parse_detailed_timings,
    parse_edid,
)

logger = logging.getLogger(__name__)


class Connector(IntEnum):
    """Physical display outputs, in scan order."""
    PANEL = 0
    HDMI1 = 1
    HDMI2 = 2


FIRST_CONNECTOR = Connector.PANEL
LAST_CONNECTOR = Connector.HDMI2


class DisplayHalInterface(ABC):
    """Abstract display HAL."""

    @abstractmethod
    def edid_get_info(self, connector: int) -> EdidInfo:
        """Read EDID identity for a connector. Raises QueryFailed when nothing is attached."""
        pass

    @abstractmethod
    def mode_get_list(self, connector: int) -> List[DisplayMode]:
        """List the modes a connector supports."""
        pass

    @abstractmethod
    def mode_set_index(self, connector: int, index: int) -> None:
        """Switch a connector to the mode at `index` of its mode list."""
        pass


class DrmDisplayHal(DisplayHalInterface):
    """
    Display HAL on top of Linux DRM sysfs and xrandr.

    EDID and connection status come from /sys/class/drm/<card>-<connector>/,
    the mode list from the EDID detailed timings (falling back to the
    connector's `modes` file), and mode changes go through xrandr.
    """

    def __init__(self, config: Optional[HALConfig] = None):
        self.config = config or HALConfig()
        self._root = Path(self.config.drm_root)

    def _connector_path(self, connector: int) -> Path:
        name = self.config.connector_names.get(int(connector))
        if name is None:
            raise QueryFailed(f"No DRM connector configured for display {connector}", connector)
        return self._root / f"{self.config.drm_card}-{name}"

    def _read_connected(self, connector: int) -> Path:
        path = self._connector_path(connector)
        try:
            status = (path / "status").read_text().strip()
        except OSError as e:
            raise QueryFailed(f"Display {connector} not present: {e}", connector) from e

        if status != "connected":
            raise QueryFailed(f"Display {connector} is {status}", connector)
        return path

    def _read_edid(self, path: Path) -> bytes:
        try:
            return (path / "edid").read_bytes()
        except FileNotFoundError:
            return b""
        except OSError as e:
            raise ServiceUnavailable(f"Failed to read EDID from {path}: {e}") from e

    def edid_get_info(self, connector: int) -> EdidInfo:
        path = self._read_connected(connector)
        return parse_edid(self._read_edid(path))

    def mode_get_list(self, connector: int) -> List[DisplayMode]:
        path = self._read_connected(connector)
        modes = parse_detailed_timings(self._read_edid(path))
        if modes:
            return modes

        # Internal panels often ship without an EDID
        try:
            lines = (path / "modes").read_text().split()
        except OSError as e:
            raise ServiceUnavailable(f"Failed to read modes for display {connector}: {e}") from e

        fallback: List[DisplayMode] = []
        for line in lines:
            try:
                w, h = line.rstrip("i").split("x")
                mode = DisplayMode(xres=int(w), yres=int(h), refresh=0.0)
            except ValueError:
                continue
            if mode not in fallback:
                fallback.append(mode)
        return fallback

    def mode_set_index(self, connector: int, index: int) -> None:
        modes = self.mode_get_list(connector)
        if not 0 <= index < len(modes):
            raise ServiceUnavailable(
                f"Mode index {index} out of range for display {connector} ({len(modes)} modes)",
                connector,
            )

        mode = modes[index]
        output = self.config.output_names.get(int(connector))
        if output is None:
            raise ServiceUnavailable(f"No output name configured for display {connector}", connector)

        args = ["xrandr", "--output", output, "--mode", f"{mode.xres}x{mode.yres}"]
        if mode.refresh > 0:
            args += ["--rate", f"{mode.refresh:.2f}"]

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                timeout=self.config.command_timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise ServiceUnavailable(f"xrandr failed: {e}", connector) from e

        if result.returncode != 0:
            raise ServiceUnavailable(
                f"xrandr exited with {result.returncode}: {result.stderr.decode(errors='replace').strip()}",
                connector,
            )
        logger.info(f"Display {connector} set to {mode.xres}x{mode.yres}@{mode.refresh}")


class StubDisplayHal(DisplayHalInterface):
    """
    In-memory display HAL for systems without the display stack and for tests.

    Connectors without an entry in `displays` behave as disconnected.
    """

    def __init__(
        self,
        displays: Optional[Dict[int, EdidInfo]] = None,
        modes: Optional[Dict[int, List[DisplayMode]]] = None,
    ):
        self.displays: Dict[int, EdidInfo] = dict(displays or {})
        self.modes: Dict[int, List[DisplayMode]] = dict(modes or {})
        self.current_modes: Dict[int, int] = {}
        self.calls: List[Tuple[str, int, Any]] = []
        self.unavailable = False
        logger.info("Using StubDisplayHal - no display hardware access")

    def _check(self, connector: int) -> None:
        if self.unavailable:
            raise ServiceUnavailable("Display service unavailable", connector)
        if connector not in self.displays:
            raise QueryFailed(f"No display on connector {connector}", connector)

    def edid_get_info(self, connector: int) -> EdidInfo:
        self.calls.append(("edid_get_info", connector, None))
        self._check(connector)
        return self.displays[connector]

    def mode_get_list(self, connector: int) -> List[DisplayMode]:
        self.calls.append(("mode_get_list", connector, None))
        self._check(connector)
        return list(self.modes.get(connector, []))

    def mode_set_index(self, connector: int, index: int) -> None:
        self.calls.append(("mode_set_index", connector, index))
        self._check(connector)
        self.current_modes[connector] = index


class RotationRefresherInterface(ABC):
    """Forces the display layout to be re-evaluated after a mode change."""

    @abstractmethod
    def update_rotation(self, always_send_configuration: bool, force_relayout: bool) -> None:
        pass


class CommandRotationRefresher(RotationRefresherInterface):
    """
    Runs a configured command to refresh the display layout.

    The force flags reach the command as TEGRASETTINGS_ALWAYS_SEND_CONFIGURATION
    and TEGRASETTINGS_FORCE_RELAYOUT environment variables ("1" or "0").
    """

    def __init__(self, command: List[str], timeout: float = 5.0):
        self.command = list(command)
        self.timeout = timeout

    def update_rotation(self, always_send_configuration: bool, force_relayout: bool) -> None:
        # Fire and forget: failures are logged, never raised
        try:
            env = dict(os.environ)
            env["TEGRASETTINGS_ALWAYS_SEND_CONFIGURATION"] = "1" if always_send_configuration else "0"
            env["TEGRASETTINGS_FORCE_RELAYOUT"] = "1" if force_relayout else "0"
            result = subprocess.run(self.command, capture_output=True, timeout=self.timeout, env=env)
            if result.returncode != 0:
                logger.warning(f"Layout refresh command exited with {result.returncode}")
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Layout refresh command failed: {e}")


class StubRotationRefresher(RotationRefresherInterface):
    """Records refresh requests without touching the display."""

    def __init__(self):
        self.calls: List[Tuple[bool, bool]] = []

    def update_rotation(self, always_send_configuration: bool, force_relayout: bool) -> None:
        self.calls.append((always_send_configuration, force_relayout))
        logger.debug(
            f"StubRotationRefresher: update_rotation({always_send_configuration}, {force_relayout})"
        )


class ControlFileInterface(ABC):
    """Abstract access to single-value control files (sysfs nodes)."""

    @abstractmethod
    def write(self, path: str, data: bytes) -> None:
        """Write `data` to `path`. Raises OSError on failure."""
        pass

    @abstractmethod
    def read(self, path: str, size: int) -> bytes:
        """Read at most `size` bytes from `path`. Raises OSError on failure."""
        pass


class SysfsControlFiles(ControlFileInterface):
    """Control files backed by the real filesystem."""

    def write(self, path: str, data: bytes) -> None:
        with open(path, "wb") as f:
            f.write(data)

    def read(self, path: str, size: int) -> bytes:
        with open(path, "rb") as f:
            return f.read(size)


class MemoryControlFiles(ControlFileInterface):
    """
    In-memory control files.

    Only paths present in `files` exist; paths listed in `read_only` reject
    writes, mirroring sysfs permission errors.
    """

    def __init__(self, files: Optional[Dict[str, bytes]] = None, read_only: Optional[Set[str]] = None):
        self.files: Dict[str, bytes] = dict(files or {})
        self.read_only: Set[str] = set(read_only or ())
        self.writes: List[Tuple[str, bytes]] = []

    def write(self, path: str, data: bytes) -> None:
        if path not in self.files:
            raise FileNotFoundError(path)
        if path in self.read_only:
            raise PermissionError(path)
        self.files[path] = bytes(data)
        self.writes.append((path, bytes(data)))

    def read(self, path: str, size: int) -> bytes:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path][:size]


class HardwareAbstractionLayer:
    """Main HAL providing the configured hardware interfaces."""

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize HAL.

        Args:
            config: Loaded configuration; defaults are used when omitted
        """
        self.config = config or Config()
        self._backend = self.config.hal.backend
        if self._backend == "auto":
            self._backend = self._detect_backend()

        self._display: Optional[DisplayHalInterface] = None
        self._rotation: Optional[RotationRefresherInterface] = None
        self._controls: Optional[ControlFileInterface] = None

        self._init_interfaces()

    def _detect_backend(self) -> str:
        """Use DRM when the configured card is visible, the stub otherwise."""
        root = Path(self.config.hal.drm_root)
        try:
            if any(p.name.startswith(f"{self.config.hal.drm_card}-") for p in root.iterdir()):
                return "drm"
        except OSError:
            pass
        return "stub"

    def _init_interfaces(self) -> None:
        """Initialize hardware interfaces based on the selected backend."""
        if self._backend == "drm":
            self._display = DrmDisplayHal(self.config.hal)
        elif self._backend == "stub":
            self._display = StubDisplayHal()
        else:
            raise ValueError(f"Unknown HAL backend: {self._backend}")

        # Panel and fan nodes are not DRM nodes
        if self.config.hal.backend == "stub":
            self._controls = MemoryControlFiles()
        else:
            self._controls = SysfsControlFiles()

        if self.config.rotation.refresh_command:
            self._rotation = CommandRotationRefresher(
                self.config.rotation.refresh_command,
                timeout=self.config.hal.command_timeout_seconds,
            )
        else:
            self._rotation = StubRotationRefresher()

        logger.info(f"HAL initialized: backend={self._backend}")

    @property
    def display(self) -> DisplayHalInterface:
        return self._display

    @property
    def rotation(self) -> RotationRefresherInterface:
        return self._rotation

    @property
    def controls(self) -> ControlFileInterface:
        return self._controls

    @property
    def backend(self) -> str:
        return self._backend

    def get_status(self) -> Dict[str, Any]:
        """Get HAL status."""
        return {
            "backend": self._backend,
            "display": type(self._display).__name__,
            "rotation": type(self._rotation).__name__,
            "controls": type(self._controls).__name__,
        }
