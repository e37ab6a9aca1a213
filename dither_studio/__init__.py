"""Palette quantization and dithering service."""

from .app import APP_VERSION, app, create_app
from .processing import DitherSettings, PixelBuffer, apply_dither, generate_palette, process

__version__ = APP_VERSION

__all__ = [
    "APP_VERSION",
    "__version__",
    "app",
    "create_app",
    "DitherSettings",
    "PixelBuffer",
    "apply_dither",
    "generate_palette",
    "process",
]
