from __future__ import annotations

import io
from typing import Dict, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from ..errors import InvalidImage
from ..processing.palette import palette_image
from ..processing.types import Color, OutputFormat, PixelBuffer

MIME_TYPES: Dict[OutputFormat, str] = {
    OutputFormat.PNG: "image/png",
    OutputFormat.WEBP: "image/webp",
    OutputFormat.GIF: "image/gif",
}

FILE_EXTENSIONS: Dict[OutputFormat, str] = {
    OutputFormat.PNG: "png",
    OutputFormat.WEBP: "webp",
    OutputFormat.GIF: "gif",
}

WEBP_QUALITY = 80
GIF_MAX_COLORS = 256


def decode_image(data: bytes) -> PixelBuffer:
    if not data:
        raise InvalidImage("Empty image upload")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return PixelBuffer.from_image(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise InvalidImage(f"Could not decode image: {exc}") from exc


def _to_gif_image(img: Image.Image, gif_quality: int, palette: Optional[Sequence[Color]]) -> Image.Image:
    rgb = img.convert("RGB")
    # Dithering already happened upstream; the GIF quantizer must only map colors.
    if palette and len(palette) <= GIF_MAX_COLORS:
        return rgb.quantize(palette=palette_image(palette), dither=Image.Dither.NONE)
    return rgb.quantize(
        colors=GIF_MAX_COLORS,
        method=Image.Quantize.MEDIANCUT,
        kmeans=max(0, 20 - gif_quality),
        dither=Image.Dither.NONE,
    )


def encode_buffer(
    buffer: PixelBuffer,
    output_format: OutputFormat,
    *,
    gif_quality: int = 10,
    palette: Optional[Sequence[Color]] = None,
) -> bytes:
    """Encode ``buffer`` as PNG, WebP or GIF bytes."""
    output_format = OutputFormat.parse(output_format)
    img = buffer.to_image()
    out = io.BytesIO()
    if output_format is OutputFormat.PNG:
        img.save(out, "PNG", optimize=True)
    elif output_format is OutputFormat.WEBP:
        img.save(out, "WEBP", quality=WEBP_QUALITY)
    else:
        _to_gif_image(img, gif_quality, palette).save(out, "GIF", optimize=True)
    return out.getvalue()
