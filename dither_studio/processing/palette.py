from __future__ import annotations

import math
from typing import Dict, Sequence, Tuple

from PIL import Image

from ..errors import EmptyPalette, InvalidPaletteSpec
from .types import COLOR_DEPTH_RANGE, Color, Palette, PaletteKind, PaletteSpec

BLACK: Color = (0, 0, 0)
WHITE: Color = (255, 255, 255)

CGA4_PALETTE: Palette = (
    BLACK,
    (0, 255, 255),
    (255, 0, 255),
    WHITE,
)

MINIMAL3_PALETTE: Palette = (
    BLACK,
    (128, 128, 128),
    WHITE,
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _cube_side(count: int) -> int:
    # Smallest side whose cube holds ``count`` points; avoids float cube roots.
    side = 1
    while side ** 3 < count:
        side += 1
    return side


def _lattice(levels: int, limit: int | None = None) -> Palette:
    step = 255 / (levels - 1) if levels > 1 else 255
    values = [round_half_up(i * step) for i in range(levels)]
    colors = []
    for r in values:
        for g in values:
            for b in values:
                if limit is not None and len(colors) >= limit:
                    return tuple(colors)
                colors.append((r, g, b))
    return tuple(colors)


def generate_palette(spec: PaletteSpec) -> Palette:
    kind = spec.kind
    if kind == PaletteKind.BLACK_WHITE:
        return (BLACK, WHITE)
    if kind == PaletteKind.RGB_CUBE:
        low, high = COLOR_DEPTH_RANGE
        if not low <= spec.color_depth <= high:
            raise InvalidPaletteSpec(
                f"RGB cube needs {low}..{high} bits per channel, got {spec.color_depth}"
            )
        return _lattice(2 ** spec.color_depth)
    if kind == PaletteKind.CUSTOM_CUBE:
        if spec.custom_colors < 1:
            raise InvalidPaletteSpec(
                f"Custom palette needs at least one color, got {spec.custom_colors}"
            )
        return _lattice(_cube_side(spec.custom_colors), limit=spec.custom_colors)
    if kind == PaletteKind.CGA4:
        return CGA4_PALETTE
    if kind == PaletteKind.MINIMAL3:
        return MINIMAL3_PALETTE
    raise InvalidPaletteSpec(f"Unrecognized palette specification: {spec!r}")


def color_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Squared Euclidean distance in RGB space."""
    dr = a[0] - b[0]
    dg = a[1] - b[1]
    db = a[2] - b[2]
    return dr * dr + dg * dg + db * db


def closest(color: Sequence[float], palette: Sequence[Color]) -> Color:
    if not palette:
        raise EmptyPalette("Cannot match a color against an empty palette")

    best = palette[0]
    best_distance = float("inf")
    for candidate in palette:
        distance = color_distance(color, candidate)
        if distance < best_distance:
            best_distance = distance
            best = candidate
    return best


class PaletteMatcher:
    """Memoized :func:`closest` for a single palette.

    Dithering queries the same handful of colors over and over, so each
    call builds one matcher and drops it afterwards.
    """

    def __init__(self, palette: Sequence[Color]) -> None:
        if not palette:
            raise EmptyPalette("Cannot match a color against an empty palette")
        self._palette: Palette = tuple(palette)
        self._memo: Dict[Tuple[float, float, float], Color] = {}

    @property
    def palette(self) -> Palette:
        return self._palette

    def __call__(self, r: float, g: float, b: float) -> Color:
        key = (r, g, b)
        match = self._memo.get(key)
        if match is None:
            match = closest(key, self._palette)
            self._memo[key] = match
        return match


def palette_image(palette: Sequence[Color]) -> Image.Image:
    """Return a ``P`` mode image carrying ``palette`` for ``Image.quantize``."""
    if not palette:
        raise EmptyPalette("Cannot build a palette image from an empty palette")
    if len(palette) > 256:
        raise ValueError(f"Pillow palettes hold at most 256 colors, got {len(palette)}")
    image = Image.new("P", (16, 16))
    flat: Tuple[int, ...] = tuple(channel for rgb in palette for channel in rgb)
    # Pad with copies of the first entry so every slot is still a palette color.
    padding = tuple(palette[0]) * (256 - len(palette))
    image.putpalette(flat + padding)
    return image
