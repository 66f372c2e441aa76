from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from .buffer import PixelBuffer, clamp
from .dither import MAX_INTENSITY, DitherAlgorithm, dither
from .enhance import MAX_TONE, adjust_tone
from .filters import (
    MAX_BLUR,
    MAX_NOISE,
    MAX_PIXEL_SIZE,
    MAX_SHARPNESS,
    RandomSource,
    add_noise,
    blur,
    pixelate,
    sharpen,
)
from .palette import CUSTOM, PALETTE_NAMES, Palette, REGISTRY, PaletteRegistry, make_palette, to_hex

log = logging.getLogger(__name__)

# field -> (low, high)
LIMITS: Dict[str, tuple] = {
    "intensity": (0, MAX_INTENSITY),
    "contrast": (0, MAX_TONE),
    "brightness": (0, MAX_TONE),
    "saturation": (0, MAX_TONE),
    "pixel_size": (1, MAX_PIXEL_SIZE),
    "blur": (0, MAX_BLUR),
    "sharpness": (0, MAX_SHARPNESS),
    "noise": (0, MAX_NOISE),
}

_INTEGER_FIELDS = ("pixel_size", "blur")

# Keys used by saved presets and UI clients.
_ALIASES = {
    "pixelSize": "pixel_size",
    "customPalette": "custom_palette",
    "custom_colors": "custom_palette",
    "customColors": "custom_palette",
}


def _clamp(value: float, low: float, high: float, default: float) -> float:
    if math.isnan(value):
        return default
    return clamp(value, low, high)


@dataclass(frozen=True)
class PipelineConfig:
    algorithm: DitherAlgorithm = DitherAlgorithm.FLOYD_STEINBERG
    palette: str = "Grayscale"
    intensity: float = 100
    contrast: float = 100
    brightness: float = 100
    saturation: float = 100
    pixel_size: int = 1
    blur: int = 0
    sharpness: float = 0
    noise: float = 0
    custom_palette: Optional[Palette] = None

    def clamped(self) -> "PipelineConfig":
        defaults = {field.name: field.default for field in fields(self)}
        changes: Dict[str, Any] = {}
        for name, (low, high) in LIMITS.items():
            value = _clamp(getattr(self, name), low, high, defaults[name])
            if name in _INTEGER_FIELDS:
                value = int(value)
            changes[name] = value
        return replace(self, **changes)

    @property
    def is_deterministic(self) -> bool:
        return not self.algorithm.is_random and self.clamped().noise == 0

    def to_dict(self, camel_case: bool = False) -> Dict[str, Any]:
        payload = asdict(self)
        payload["algorithm"] = self.algorithm.value
        if self.custom_palette is None:
            payload.pop("custom_palette")
        else:
            payload["custom_palette"] = [to_hex(rgb) for rgb in self.custom_palette]
        if camel_case:
            payload["pixelSize"] = payload.pop("pixel_size")
            if "custom_palette" in payload:
                payload["customPalette"] = payload.pop("custom_palette")
        return payload

    @classmethod
    def from_mapping(
        cls, values: Mapping[str, Any], base: Optional["PipelineConfig"] = None
    ) -> "PipelineConfig":
        """Build a config from loosely typed input such as a query string or preset.

        Keys missing from ``values`` keep their value from ``base``. Numbers may
        arrive as strings. Unknown algorithm or palette names raise ``ValueError``.
        """

        base = base or cls()
        changes: Dict[str, Any] = {}
        known = {field.name for field in fields(cls)}

        for raw_key, raw_value in values.items():
            key = _ALIASES.get(raw_key, raw_key)
            if key not in known or raw_value is None:
                continue
            if key == "algorithm":
                changes[key] = DitherAlgorithm.parse(raw_value)
            elif key == "palette":
                if raw_value not in PALETTE_NAMES:
                    raise ValueError(f"Unknown palette: {raw_value!r}")
                changes[key] = raw_value
            elif key == "custom_palette":
                colors = raw_value.split(",") if isinstance(raw_value, str) else raw_value
                changes[key] = make_palette(colors)
            else:
                try:
                    number = float(raw_value)
                except (TypeError, ValueError):
                    raise ValueError(f"{key} expects a number, got {raw_value!r}") from None
                if not math.isfinite(number):
                    raise ValueError(f"{key} expects a finite number, got {raw_value!r}")
                changes[key] = int(number) if key in _INTEGER_FIELDS else number

        return replace(base, **changes)

    def resolve_palette(self, registry: PaletteRegistry = REGISTRY) -> Palette:
        if self.palette == CUSTOM and self.custom_palette is not None:
            return self.custom_palette
        return registry.resolve(self.palette)


def run_pipeline(
    buf: PixelBuffer,
    config: PipelineConfig,
    rng: Optional[RandomSource] = None,
    registry: PaletteRegistry = REGISTRY,
) -> PixelBuffer:
    """Run every stage in its fixed order and return the final buffer.

    Order: blur, tone, sharpen, noise, pixelate, dither. Pixelation may shrink
    the buffer, so the result can be smaller than ``buf``.
    """

    config = config.clamped()
    palette = config.resolve_palette(registry)
    log.debug("Running pipeline on %r: %s", buf, config)

    if config.blur > 0:
        buf = blur(buf, config.blur)

    buf = adjust_tone(buf, config.contrast, config.brightness, config.saturation)

    if config.sharpness > 0:
        buf = sharpen(buf, config.sharpness)

    if config.noise > 0:
        buf = add_noise(buf, config.noise, rng=rng)

    if config.pixel_size > 1:
        buf = pixelate(buf, config.pixel_size)

    return dither(buf, config.algorithm, palette, config.intensity, rng=rng)
