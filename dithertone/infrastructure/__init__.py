"""Infrastructure helpers for fetching, caching, presets and responses."""

from .cache import CACHE, LAST_GOOD, ResponseCache, cache_key, last_good_png, remember_last_good
from .network import FETCHER, SourceError, SourceFetcher
from .presets import PRESETS, PresetStore
from .responses import png_bytes, send_png, send_png_bytes

__all__ = [
    "CACHE",
    "LAST_GOOD",
    "ResponseCache",
    "cache_key",
    "last_good_png",
    "remember_last_good",
    "FETCHER",
    "SourceError",
    "SourceFetcher",
    "PRESETS",
    "PresetStore",
    "png_bytes",
    "send_png",
    "send_png_bytes",
]
