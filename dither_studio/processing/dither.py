from __future__ import annotations

from typing import Callable, Dict, Sequence, Tuple

from .palette import PaletteMatcher
from .types import Algorithm, Color, PixelBuffer

BAYER_4X4 = (
    (0, 8, 2, 10),
    (12, 4, 14, 6),
    (3, 11, 1, 9),
    (15, 7, 13, 5),
)
ORDERED_SPREAD = 32

# (dx, dy, weight) over sixteenths
FLOYD_STEINBERG_KERNEL: Tuple[Tuple[int, int, int], ...] = (
    (1, 0, 7),
    (-1, 1, 3),
    (0, 1, 5),
    (1, 1, 1),
)

# Each neighbor takes 1/8 of the error; the remaining 2/8 is dropped.
ATKINSON_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (1, 0),
    (2, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
    (0, 2),
)


def _store(value: float) -> int:
    # 8-bit clamped storage: clamp, then round half to even.
    if value <= 0:
        return 0
    if value >= 255:
        return 255
    return round(value)


def _diffuse(data: bytearray, idx: int, err_r: float, err_g: float, err_b: float) -> None:
    data[idx] = _store(data[idx] + err_r)
    data[idx + 1] = _store(data[idx + 1] + err_g)
    data[idx + 2] = _store(data[idx + 2] + err_b)


def floyd_steinberg(buffer: PixelBuffer, palette: Sequence[Color], diffusion_factor: float) -> None:
    width, height = buffer.size
    data = buffer.data
    match = PaletteMatcher(palette)

    for y in range(height):
        for x in range(width):
            idx = (y * width + x) * 4
            old_r, old_g, old_b = data[idx], data[idx + 1], data[idx + 2]
            new_r, new_g, new_b = match(old_r, old_g, old_b)
            data[idx], data[idx + 1], data[idx + 2] = new_r, new_g, new_b

            err_r = old_r - new_r
            err_g = old_g - new_g
            err_b = old_b - new_b
            if not (err_r or err_g or err_b):
                continue

            for dx, dy, weight in FLOYD_STEINBERG_KERNEL:
                nx = x + dx
                ny = y + dy
                if nx < 0 or nx >= width or ny >= height:
                    continue
                _diffuse(
                    data,
                    (ny * width + nx) * 4,
                    err_r * weight / 16 * diffusion_factor,
                    err_g * weight / 16 * diffusion_factor,
                    err_b * weight / 16 * diffusion_factor,
                )


def ordered(buffer: PixelBuffer, palette: Sequence[Color]) -> None:
    width, height = buffer.size
    data = buffer.data
    match = PaletteMatcher(palette)

    for y in range(height):
        row = BAYER_4X4[y % 4]
        for x in range(width):
            idx = (y * width + x) * 4
            offset = (row[x % 4] / 16 - 0.5) * ORDERED_SPREAD
            r = min(255, max(0, data[idx] + offset))
            g = min(255, max(0, data[idx + 1] + offset))
            b = min(255, max(0, data[idx + 2] + offset))
            data[idx], data[idx + 1], data[idx + 2] = match(r, g, b)


def atkinson(buffer: PixelBuffer, palette: Sequence[Color], diffusion_factor: float) -> None:
    width, height = buffer.size
    data = buffer.data
    match = PaletteMatcher(palette)

    for y in range(height):
        for x in range(width):
            idx = (y * width + x) * 4
            old_r, old_g, old_b = data[idx], data[idx + 1], data[idx + 2]
            new_r, new_g, new_b = match(old_r, old_g, old_b)
            data[idx], data[idx + 1], data[idx + 2] = new_r, new_g, new_b

            err_r = (old_r - new_r) * diffusion_factor / 8
            err_g = (old_g - new_g) * diffusion_factor / 8
            err_b = (old_b - new_b) * diffusion_factor / 8
            if not (err_r or err_g or err_b):
                continue

            for dx, dy in ATKINSON_OFFSETS:
                nx = x + dx
                ny = y + dy
                if nx < 0 or nx >= width or ny >= height:
                    continue
                _diffuse(data, (ny * width + nx) * 4, err_r, err_g, err_b)


DitherKernel = Callable[[PixelBuffer, Sequence[Color], float], None]

DITHERERS: Dict[Algorithm, DitherKernel] = {
    Algorithm.FLOYD_STEINBERG: floyd_steinberg,
    Algorithm.ORDERED: lambda buffer, palette, _factor: ordered(buffer, palette),
    Algorithm.ATKINSON: atkinson,
}


def apply_dither(
    buffer: PixelBuffer,
    palette: Sequence[Color],
    algorithm: Algorithm,
    diffusion_factor: float,
) -> PixelBuffer:
    """Dither a copy of ``buffer``; the input is left unchanged."""
    result = buffer.copy()
    kernel = DITHERERS.get(Algorithm.parse(algorithm), floyd_steinberg)
    kernel(result, palette, diffusion_factor)
    return result
