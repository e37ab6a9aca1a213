"""Infrastructure helpers: encoding, caching, fetching, presets and responses."""

from .cache import ResponseCache, cache_key
from .encoding import FILE_EXTENSIONS, MIME_TYPES, decode_image, encode_buffer
from .network import FETCHER, SourceFetcher
from .presets import InMemoryPresetStore, JsonFilePresetStore, PresetStore, create_preset_store
from .responses import RenderedImage, compression_ratio, format_bytes, send_dithered, size_reduction

__all__ = [
    "ResponseCache",
    "cache_key",
    "FILE_EXTENSIONS",
    "MIME_TYPES",
    "decode_image",
    "encode_buffer",
    "FETCHER",
    "SourceFetcher",
    "InMemoryPresetStore",
    "JsonFilePresetStore",
    "PresetStore",
    "create_preset_store",
    "RenderedImage",
    "compression_ratio",
    "format_bytes",
    "send_dithered",
    "size_reduction",
]
