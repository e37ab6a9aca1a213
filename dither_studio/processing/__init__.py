"""Palette generation, color matching, contrast and dithering for dither-studio."""

from .dither import apply_dither, atkinson, floyd_steinberg, ordered
from .enhance import enhance_contrast
from .palette import PaletteMatcher, closest, generate_palette, palette_image
from .pipeline import DitherResult, compute_target_size, process, resize_buffer
from .types import (
    Algorithm,
    DitherSettings,
    OutputFormat,
    PaletteKind,
    PaletteSpec,
    PixelBuffer,
)

__all__ = [
    "apply_dither",
    "atkinson",
    "floyd_steinberg",
    "ordered",
    "enhance_contrast",
    "PaletteMatcher",
    "closest",
    "generate_palette",
    "palette_image",
    "DitherResult",
    "compute_target_size",
    "process",
    "resize_buffer",
    "Algorithm",
    "DitherSettings",
    "OutputFormat",
    "PaletteKind",
    "PaletteSpec",
    "PixelBuffer",
]
