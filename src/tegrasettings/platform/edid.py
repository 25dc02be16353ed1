"""
EDID records and parsing.

Decodes the parts of a raw EDID blob the display settings need: the
three-letter manufacturer id, the monitor name descriptor, and the detailed
timing descriptors used as the display's mode list.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional

logger = logging.getLogger(__name__)

EDID_BLOCK_SIZE = 128
EDID_HEADER = bytes([0x00, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x00])

# Display descriptor tags (18-byte descriptors with a zero pixel clock)
DESCRIPTOR_MONITOR_NAME = 0xFC

CEA_EXTENSION_TAG = 0x02

# EDID 1.4 bit depth field (input parameters, bits 6-4)
_BIT_DEPTHS = {1: 6, 2: 8, 3: 10, 4: 12, 5: 14, 6: 16}


class PixelEncoding(IntEnum):
    """Pixel encodings a display mode can carry."""
    RGB = 0
    YUV444 = 1
    YUV422 = 2
    YUV420 = 3


@dataclass(frozen=True)
class DisplayMode:
    """A single selectable display mode."""
    xres: int
    yres: int
    refresh: float
    pixenc: PixelEncoding = PixelEncoding.RGB
    bpc: int = 8
    colorimetry: int = 0  # 1 = BT.2020, anything else BT.709


@dataclass(frozen=True)
class EdidInfo:
    """Identity fields read from a display's EDID."""
    manufacturer_id: str = ""
    monitor_name: str = ""
    product_code: int = 0
    serial_number: int = 0

    def __post_init__(self):
        # Missing fields count as empty strings
        if self.manufacturer_id is None:
            object.__setattr__(self, "manufacturer_id", "")
        if self.monitor_name is None:
            object.__setattr__(self, "monitor_name", "")


def parse_manufacturer_id(data: bytes) -> str:
    """Decode the packed 5-bit manufacturer letters at bytes 8-9."""
    code = (data[8] << 8) | data[9]
    letters = [(code >> shift) & 0x1F for shift in (10, 5, 0)]
    if not all(1 <= letter <= 26 for letter in letters):
        return ""
    return "".join(chr(letter + 0x40) for letter in letters)


def _descriptor_text(descriptor: bytes) -> str:
    text = descriptor[5:18].split(b"\x0a", 1)[0]
    return text.decode("ascii", errors="replace").rstrip(" \x00")


def _descriptors(block: bytes) -> List[bytes]:
    return [block[offset:offset + 18] for offset in (54, 72, 90, 108)]


def _parse_timing(descriptor: bytes, bpc: int) -> Optional[DisplayMode]:
    pixel_clock = (descriptor[0] | (descriptor[1] << 8)) * 10_000
    if pixel_clock == 0:
        return None

    h_active = descriptor[2] | ((descriptor[4] & 0xF0) << 4)
    h_blank = descriptor[3] | ((descriptor[4] & 0x0F) << 8)
    v_active = descriptor[5] | ((descriptor[7] & 0xF0) << 4)
    v_blank = descriptor[6] | ((descriptor[7] & 0x0F) << 8)

    total = (h_active + h_blank) * (v_active + v_blank)
    if h_active == 0 or v_active == 0 or total == 0:
        return None

    refresh = round(pixel_clock / total, 3)
    return DisplayMode(xres=h_active, yres=v_active, refresh=refresh, bpc=bpc)


def parse_bits_per_color(data: bytes) -> int:
    """Bits per color from the input parameters byte, 8 when unspecified."""
    params = data[20]
    if not params & 0x80:
        return 8
    return _BIT_DEPTHS.get((params >> 4) & 0x07, 8)


def parse_edid(data: bytes) -> EdidInfo:
    """
    Parse identity fields from a raw EDID blob.

    Args:
        data: Raw EDID bytes (base block plus optional extensions)

    Returns:
        EdidInfo, with empty fields when the blob is too short or invalid
    """
    if len(data) < EDID_BLOCK_SIZE or data[:8] != EDID_HEADER:
        if data:
            logger.warning(f"Ignoring invalid EDID ({len(data)} bytes)")
        return EdidInfo()

    monitor_name = ""
    for descriptor in _descriptors(data):
        if descriptor[0:3] == b"\x00\x00\x00" and descriptor[3] == DESCRIPTOR_MONITOR_NAME:
            monitor_name = _descriptor_text(descriptor)
            break

    return EdidInfo(
        manufacturer_id=parse_manufacturer_id(data),
        monitor_name=monitor_name,
        product_code=data[10] | (data[11] << 8),
        serial_number=int.from_bytes(data[12:16], "little"),
    )


def parse_detailed_timings(data: bytes) -> List[DisplayMode]:
    """
    Collect the detailed timing descriptors of an EDID blob.

    The base block's descriptors come first (the first one is the preferred
    mode), followed by those of any CEA-861 extension blocks. Duplicate
    modes are dropped.
    """
    if len(data) < EDID_BLOCK_SIZE or data[:8] != EDID_HEADER:
        return []

    bpc = parse_bits_per_color(data)
    modes: List[DisplayMode] = []

    def add(descriptor: bytes) -> None:
        mode = _parse_timing(descriptor, bpc)
        if mode is not None and mode not in modes:
            modes.append(mode)

    for descriptor in _descriptors(data):
        add(descriptor)

    for start in range(EDID_BLOCK_SIZE, len(data) - EDID_BLOCK_SIZE + 1, EDID_BLOCK_SIZE):
        block = data[start:start + EDID_BLOCK_SIZE]
        if block[0] != CEA_EXTENSION_TAG or block[2] < 4:
            continue
        offset = block[2]
        while offset + 18 <= EDID_BLOCK_SIZE - 1:
            add(block[offset:offset + 18])
            offset += 18

    return modes
