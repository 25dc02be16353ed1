"""
Pytest configuration and shared fixtures for tegrasettings tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Generator, List, Optional, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tegrasettings.platform.edid import DisplayMode, EdidInfo  # noqa: E402
from tegrasettings.platform.hal import StubDisplayHal, StubRotationRefresher  # noqa: E402
from tegrasettings.persistence.preferences import PreferenceStore  # noqa: E402


# ============================================================================
# Temporary Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_path = temp_dir / "config.yaml"
    config_path.write_text(f"""
version: 1
hal:
  backend: stub
  drm_card: card1
  connector_names:
    0: eDP-1
    1: HDMI-A-1
controls:
  fan_profile_paths: [/tmp/pwm, /tmp/est]
preferences:
  path: {temp_dir / "prefs.yaml"}
rotation:
  refresh_command: [/bin/true]
""")
    return config_path


# ============================================================================
# EDID Fixtures
# ============================================================================

def encode_manufacturer(code: str) -> bytes:
    value = 0
    for letter in code:
        value = (value << 5) | (ord(letter) - 0x40)
    return value.to_bytes(2, "big")


def encode_timing(pixel_clock_10khz: int, h_active: int, h_blank: int, v_active: int, v_blank: int) -> bytes:
    return bytes([
        pixel_clock_10khz & 0xFF,
        pixel_clock_10khz >> 8,
        h_active & 0xFF,
        h_blank & 0xFF,
        ((h_active >> 8) << 4) | (h_blank >> 8),
        v_active & 0xFF,
        v_blank & 0xFF,
        ((v_active >> 8) << 4) | (v_blank >> 8),
    ]) + bytes(10)


def encode_text_descriptor(tag: int, text: str) -> bytes:
    body = text.encode("ascii")[:13]
    if len(body) < 13:
        body += b"\x0a" + b" " * (12 - len(body))
    return bytes([0, 0, 0, tag, 0]) + body


TIMING_1080P60 = (14850, 1920, 280, 1080, 45)


@pytest.fixture
def make_edid():
    """Factory building raw EDID blobs."""
    def _make_edid(
        manufacturer: str = "DEL",
        name: Optional[str] = "U2415",
        timings: Optional[List[Tuple[int, int, int, int, int]]] = None,
        input_params: int = 0x80,
        extension_timings: Optional[List[Tuple[int, int, int, int, int]]] = None,
    ) -> bytes:
        if timings is None:
            timings = [TIMING_1080P60]

        base = bytearray(128)
        base[0:8] = bytes([0x00, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x00])
        base[8:10] = encode_manufacturer(manufacturer)
        base[10:12] = (0xA0B1).to_bytes(2, "little")
        base[12:16] = (12345).to_bytes(4, "little")
        base[18] = 1
        base[19] = 4
        base[20] = input_params

        descriptors = [encode_timing(*t) for t in timings]
        if name is not None:
            descriptors.append(encode_text_descriptor(0xFC, name))
        while len(descriptors) < 4:
            descriptors.append(bytes([0, 0, 0, 0x10]) + bytes(14))
        for i, descriptor in enumerate(descriptors[:4]):
            base[54 + 18 * i:72 + 18 * i] = descriptor

        blob = bytes(base)
        if extension_timings:
            base[126] = 1
            ext = bytearray(128)
            ext[0] = 0x02
            ext[1] = 0x03
            ext[2] = 4
            offset = 4
            for t in extension_timings:
                ext[offset:offset + 18] = encode_timing(*t)
                offset += 18
            blob = bytes(base) + bytes(ext)
        return blob

    return _make_edid


# ============================================================================
# Mock Hardware Fixtures
# ============================================================================

@pytest.fixture
def dell_edid() -> EdidInfo:
    """EDID identity of a Dell U2415 monitor."""
    return EdidInfo(manufacturer_id="DEL", monitor_name="U2415")


@pytest.fixture
def sample_modes() -> List[DisplayMode]:
    """Modes of a typical 1080p monitor."""
    return [
        DisplayMode(xres=1920, yres=1080, refresh=60.0),
        DisplayMode(xres=1920, yres=1080, refresh=59.94),
        DisplayMode(xres=1280, yres=720, refresh=60.0),
    ]


@pytest.fixture
def stub_hal(dell_edid, sample_modes) -> StubDisplayHal:
    """Stub HAL with the internal panel and one HDMI monitor on HDMI2."""
    return StubDisplayHal(
        displays={0: EdidInfo(), 2: dell_edid},
        modes={0: [DisplayMode(xres=1920, yres=1080, refresh=60.0)], 2: sample_modes},
    )


@pytest.fixture
def stub_rotation() -> StubRotationRefresher:
    return StubRotationRefresher()


@pytest.fixture
def preference_store(temp_dir: Path) -> PreferenceStore:
    """Empty preference store backed by a temporary file."""
    return PreferenceStore(temp_dir / "preferences.yaml")


# ============================================================================
# Clean Environment Fixture
# ============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Ensure clean environment for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("TEGRASETTINGS_"):
            monkeypatch.delenv(key, raising=False)
