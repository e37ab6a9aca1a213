from __future__ import annotations

from .palette import round_half_up
from .types import PixelBuffer

ALPHA_IDENTITY = list(range(256))


def luma_range(buffer: PixelBuffer) -> tuple[float, float]:
    """Return the min and max of the unweighted RGB mean over all pixels."""
    data = buffer.data
    low = 255.0
    high = 0.0
    for idx in range(0, len(data), 4):
        value = (data[idx] + data[idx + 1] + data[idx + 2]) / 3
        if value < low:
            low = value
        if value > high:
            high = value
    return low, high


def enhance_contrast(buffer: PixelBuffer) -> PixelBuffer:
    """Stretch RGB channels in place so the luma range spans 0..255.

    Every channel is remapped with the same luma-derived bounds, which can
    shift hues slightly. Flat images are returned untouched.
    """
    low, high = luma_range(buffer)
    spread = high - low
    if spread <= 0:
        return buffer

    # Channel values are bytes, so a 256-entry table covers every remap.
    lut = [
        min(255, max(0, round_half_up((value - low) / spread * 255)))
        for value in range(256)
    ]
    enhanced = buffer.to_image().point(lut * 3 + ALPHA_IDENTITY)
    buffer.data[:] = enhanced.tobytes()
    return buffer
