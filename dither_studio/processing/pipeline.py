from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Tuple

from PIL import Image

from .dither import apply_dither
from .enhance import enhance_contrast
from .palette import generate_palette, round_half_up
from .types import DitherSettings, Palette, PixelBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DitherResult:
    buffer: PixelBuffer
    palette: Palette

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height


def compute_target_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Shrink ``(width, height)`` so the longer side fits ``max_dimension``.

    Images already within bounds keep their size; nothing is enlarged.
    """
    if width > height and width > max_dimension:
        return max_dimension, max(1, round_half_up(height * (max_dimension / width)))
    if height > width and height > max_dimension:
        return max(1, round_half_up(width * (max_dimension / height))), max_dimension
    if width == height and width > max_dimension:
        return max_dimension, max_dimension
    return width, height


def resize_buffer(buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
    if buffer.size == (width, height):
        return buffer.copy()
    img = buffer.to_image().resize((width, height), Image.Resampling.LANCZOS)
    return PixelBuffer.from_image(img)


def process(source: PixelBuffer, settings: DitherSettings) -> DitherResult:
    started = time.perf_counter()

    if settings.resize:
        width, height = compute_target_size(source.width, source.height, settings.max_dimension)
        working = resize_buffer(source, width, height)
        logger.debug(
            "Resized %dx%d -> %dx%d", source.width, source.height, width, height
        )
    else:
        working = source.copy()

    if settings.enhance_contrast:
        enhance_contrast(working)

    palette = generate_palette(settings.palette)
    result = apply_dither(working, palette, settings.algorithm, settings.diffusion_factor)

    logger.debug(
        "Dithered %dx%d with %s over %d colors in %.3fs",
        result.width,
        result.height,
        settings.algorithm.value,
        len(palette),
        time.perf_counter() - started,
    )
    return DitherResult(result, palette)
