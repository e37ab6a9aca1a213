from __future__ import annotations

import io
from dataclasses import dataclass

from flask import Response, send_file

from ..processing.pipeline import DitherResult
from ..processing.types import OutputFormat
from .encoding import FILE_EXTENSIONS, MIME_TYPES

_UNITS = ("Bytes", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while exponent < len(_UNITS) - 1 and size >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size / 1024 ** exponent, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_UNITS[exponent]}"


def compression_ratio(original_size: int, dithered_size: int) -> str:
    if not original_size or not dithered_size:
        return ""
    return f"{original_size / dithered_size:.2f}:1"


def size_reduction(original_size: int, dithered_size: int) -> str:
    if not original_size:
        return ""
    return f"{(1 - dithered_size / original_size) * 100:.2f}%"


def download_name(output_format: OutputFormat) -> str:
    return f"dithered_image.{FILE_EXTENSIONS[output_format]}"


@dataclass(frozen=True)
class RenderedImage:
    data: bytes
    output_format: OutputFormat
    width: int
    height: int
    palette_size: int

    @classmethod
    def from_result(cls, data: bytes, output_format: OutputFormat, result: DitherResult) -> "RenderedImage":
        return cls(data, output_format, result.width, result.height, len(result.palette))


def send_dithered(rendered: RenderedImage, *, original_size: int) -> Response:
    dithered_size = len(rendered.data)
    response = send_file(
        io.BytesIO(rendered.data),
        mimetype=MIME_TYPES[rendered.output_format],
        as_attachment=True,
        download_name=download_name(rendered.output_format),
    )
    response.headers["X-Original-Size"] = str(original_size)
    response.headers["X-Dithered-Size"] = str(dithered_size)
    response.headers["X-Size-Reduction"] = size_reduction(original_size, dithered_size)
    response.headers["X-Compression-Ratio"] = compression_ratio(original_size, dithered_size)
    response.headers["X-Image-Width"] = str(rendered.width)
    response.headers["X-Image-Height"] = str(rendered.height)
    response.headers["X-Palette-Size"] = str(rendered.palette_size)
    return response
