"""Error types raised by the dithering core and the service around it."""

from __future__ import annotations


class DitherError(ValueError):
    """Base class for invalid input reaching the dithering core."""


class InvalidPaletteSpec(DitherError):
    pass


class EmptyPalette(DitherError):
    pass


class InvalidDimensions(DitherError):
    pass


class InvalidSettings(DitherError):
    pass


class InvalidImage(DitherError):
    pass


class SourceError(RuntimeError):
    """Raised when a remote source image cannot be fetched."""
