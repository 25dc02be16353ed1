"""Human-readable descriptions of display modes."""

from decimal import Decimal, ROUND_HALF_EVEN

from tegrasettings.platform.edid import DisplayMode, PixelEncoding

_ENCODING_NAMES = {
    PixelEncoding.YUV444: "YUV444",
    PixelEncoding.YUV422: "YUV422",
    PixelEncoding.YUV420: "YUV420",
}

COLORIMETRY_BT2020 = 1


def format_refresh(refresh: float) -> str:
    """Refresh rate with at most two decimals and no trailing zeros."""
    rounded = Decimal(refresh).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_mode_info(mode: DisplayMode) -> str:
    """e.g. ``1920x1080 59.94Hz``."""
    return f"{mode.xres}x{mode.yres} {format_refresh(mode.refresh)}Hz"


def format_color_info(mode: DisplayMode) -> str:
    """e.g. ``YUV420 10-bit Rec. 2020``."""
    encoding = _ENCODING_NAMES.get(mode.pixenc, "RGB")
    colorimetry = "Rec. 2020" if mode.colorimetry == COLORIMETRY_BT2020 else "Rec. 709"
    return f"{encoding} {mode.bpc}-bit {colorimetry}"
