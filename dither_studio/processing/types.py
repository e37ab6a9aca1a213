from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from PIL import Image

from ..errors import InvalidDimensions, InvalidPaletteSpec, InvalidSettings

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]
Palette = Tuple[Color, ...]

CUSTOM_COLORS_RANGE = (2, 64)
COLOR_DEPTH_RANGE = (1, 4)
GIF_QUALITY_RANGE = (1, 20)


@dataclass
class PixelBuffer:
    """Flat RGBA8 pixel data, row-major without padding."""

    width: int
    height: int
    data: bytearray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidDimensions(f"Invalid dimensions {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise InvalidDimensions(
                f"Buffer holds {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGBA"
            )
        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, bytearray(self.data))

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        idx = (y * self.width + x) * 4
        r, g, b, a = self.data[idx : idx + 4]
        return r, g, b, a

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        rgba = img.convert("RGBA")
        return cls(rgba.width, rgba.height, bytearray(rgba.tobytes()))

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", self.size, bytes(self.data))


class PaletteKind(str, Enum):
    BLACK_WHITE = "bw"
    RGB_CUBE = "rgb"
    CUSTOM_CUBE = "custom"
    CGA4 = "2bit"
    MINIMAL3 = "extreme"


@dataclass(frozen=True)
class PaletteSpec:
    kind: PaletteKind = PaletteKind.BLACK_WHITE
    color_depth: int = 1
    custom_colors: int = 8

    @classmethod
    def black_white(cls) -> "PaletteSpec":
        return cls(PaletteKind.BLACK_WHITE)

    @classmethod
    def rgb_cube(cls, bits: int) -> "PaletteSpec":
        return cls(PaletteKind.RGB_CUBE, color_depth=bits)

    @classmethod
    def custom_cube(cls, count: int) -> "PaletteSpec":
        return cls(PaletteKind.CUSTOM_CUBE, custom_colors=count)

    @classmethod
    def cga4(cls) -> "PaletteSpec":
        return cls(PaletteKind.CGA4)

    @classmethod
    def minimal3(cls) -> "PaletteSpec":
        return cls(PaletteKind.MINIMAL3)


class Algorithm(str, Enum):
    FLOYD_STEINBERG = "floydSteinberg"
    ORDERED = "ordered"
    ATKINSON = "atkinson"

    @classmethod
    def parse(cls, value: Any) -> "Algorithm":
        """Resolve an algorithm name, falling back to Floyd-Steinberg."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            logger.warning("Unknown algorithm %r, using Floyd-Steinberg", value)
            return cls.FLOYD_STEINBERG


class OutputFormat(str, Enum):
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"

    @classmethod
    def parse(cls, value: Any) -> "OutputFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidSettings(f"Unsupported output format: {value!r}") from None


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off", ""}:
        return False
    raise InvalidSettings(f"{name}: expected a boolean, got {value!r}")


def _coerce_int(name: str, value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidSettings(f"{name}: expected an integer, got {value!r}") from None
    if not number.is_integer():
        raise InvalidSettings(f"{name}: expected an integer, got {value!r}")
    return int(number)


def _coerce_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidSettings(f"{name}: expected a number, got {value!r}") from None


def _parse_palette(values: Mapping[str, Any], base: PaletteSpec) -> PaletteSpec:
    kind = base.kind
    if "palette" in values:
        try:
            kind = PaletteKind(str(values["palette"]))
        except ValueError:
            raise InvalidPaletteSpec(f"Unknown palette: {values['palette']!r}") from None

    color_depth = base.color_depth
    if "colorDepth" in values:
        color_depth = _coerce_int("colorDepth", values["colorDepth"])
    custom_colors = base.custom_colors
    if "customColors" in values:
        custom_colors = _coerce_int("customColors", values["customColors"])

    low, high = COLOR_DEPTH_RANGE
    if kind is PaletteKind.RGB_CUBE and not low <= color_depth <= high:
        raise InvalidPaletteSpec(f"colorDepth must be within {low}..{high}, got {color_depth}")
    low, high = CUSTOM_COLORS_RANGE
    if kind is PaletteKind.CUSTOM_CUBE and not low <= custom_colors <= high:
        raise InvalidPaletteSpec(f"customColors must be within {low}..{high}, got {custom_colors}")

    return PaletteSpec(kind, color_depth=color_depth, custom_colors=custom_colors)


@dataclass(frozen=True)
class DitherSettings:
    """Immutable bundle of everything a single dithering request needs.

    Defaults match the original dithering tool. Field names in
    :meth:`from_mapping` and :meth:`to_mapping` use the tool's camelCase keys
    so that form posts, query strings and stored presets share one format.
    """

    algorithm: Algorithm = Algorithm.FLOYD_STEINBERG
    palette: PaletteSpec = field(default_factory=PaletteSpec)
    diffusion_factor: float = 0.75
    resize: bool = False
    max_dimension: int = 400
    enhance_contrast: bool = False
    output_format: OutputFormat = OutputFormat.PNG
    gif_quality: int = 10

    def __post_init__(self) -> None:
        if not 0.0 <= self.diffusion_factor <= 1.0:
            raise InvalidSettings(
                f"diffusionFactor must be within 0..1, got {self.diffusion_factor}"
            )
        if self.max_dimension <= 0:
            raise InvalidSettings(f"maxDimension must be positive, got {self.max_dimension}")
        low, high = GIF_QUALITY_RANGE
        if not low <= self.gif_quality <= high:
            raise InvalidSettings(f"gifQuality must be within {low}..{high}, got {self.gif_quality}")

    @classmethod
    def from_mapping(
        cls, values: Mapping[str, Any], base: Optional["DitherSettings"] = None
    ) -> "DitherSettings":
        base = base or cls()
        changes: Dict[str, Any] = {"palette": _parse_palette(values, base.palette)}

        if "algorithm" in values:
            changes["algorithm"] = Algorithm.parse(values["algorithm"])
        if "diffusionFactor" in values:
            changes["diffusion_factor"] = _coerce_float("diffusionFactor", values["diffusionFactor"])
        if "resize" in values:
            changes["resize"] = _coerce_bool("resize", values["resize"])
        if "maxDimension" in values:
            changes["max_dimension"] = _coerce_int("maxDimension", values["maxDimension"])
        if "enhanceContrast" in values:
            changes["enhance_contrast"] = _coerce_bool("enhanceContrast", values["enhanceContrast"])
        if "outputFormat" in values:
            changes["output_format"] = OutputFormat.parse(values["outputFormat"])
        if "gifQuality" in values:
            changes["gif_quality"] = _coerce_int("gifQuality", values["gifQuality"])

        return replace(base, **changes)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "palette": self.palette.kind.value,
            "colorDepth": self.palette.color_depth,
            "customColors": self.palette.custom_colors,
            "diffusionFactor": self.diffusion_factor,
            "resize": self.resize,
            "maxDimension": self.max_dimension,
            "enhanceContrast": self.enhance_contrast,
            "outputFormat": self.output_format.value,
            "gifQuality": self.gif_quality,
        }
