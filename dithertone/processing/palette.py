from __future__ import annotations

import logging
import math
import re
import threading
from typing import Dict, Iterable, Sequence, Tuple, Union

from ..errors import InvalidPalette

RGB = Tuple[int, int, int]
Palette = Tuple[RGB, ...]
ColorSpec = Union[str, Sequence[int]]

log = logging.getLogger(__name__)

CUSTOM = "Custom"

GRAYSCALE: Palette = (
    (0, 0, 0),
    (85, 85, 85),
    (170, 170, 170),
    (255, 255, 255),
)

CGA: Palette = (
    (0, 0, 0),
    (0, 170, 170),
    (170, 0, 170),
    (170, 170, 170),
    (170, 85, 0),
    (85, 255, 85),
    (255, 255, 85),
    (255, 255, 255),
)

EGA: Palette = (
    (0, 0, 0),
    (0, 0, 170),
    (0, 170, 0),
    (0, 170, 170),
    (170, 0, 0),
    (170, 0, 170),
    (170, 85, 0),
    (170, 170, 170),
    (85, 85, 85),
    (85, 85, 255),
    (85, 255, 85),
    (85, 255, 255),
    (255, 85, 85),
    (255, 85, 255),
    (255, 255, 85),
    (255, 255, 255),
)

GAMEBOY: Palette = (
    (15, 56, 15),
    (48, 98, 48),
    (139, 172, 15),
    (155, 188, 15),
)

C64: Palette = (
    (0, 0, 0),
    (255, 255, 255),
    (136, 0, 0),
    (170, 255, 238),
    (204, 68, 204),
    (0, 204, 85),
    (0, 0, 170),
    (238, 238, 119),
    (221, 136, 85),
    (102, 68, 0),
    (255, 119, 119),
    (51, 51, 51),
    (119, 119, 119),
    (170, 255, 102),
    (0, 136, 255),
    (187, 187, 187),
)

ZX_SPECTRUM: Palette = (
    (0, 0, 0),
    (0, 0, 215),
    (215, 0, 0),
    (215, 0, 215),
    (0, 215, 0),
    (0, 215, 215),
    (215, 215, 0),
    (215, 215, 215),
)

# The 128-grey entry appears twice on the real hardware; keep both.
APPLE_II: Palette = (
    (0, 0, 0),
    (114, 38, 64),
    (64, 51, 127),
    (228, 52, 254),
    (14, 89, 64),
    (128, 128, 128),
    (27, 154, 254),
    (191, 179, 255),
    (64, 76, 0),
    (228, 101, 1),
    (128, 128, 128),
    (241, 166, 191),
    (27, 203, 1),
    (191, 204, 128),
    (141, 217, 191),
    (255, 255, 255),
)

DEFAULT_CUSTOM: Palette = ((0, 0, 0), (255, 255, 255))

NAMED_PALETTES: Dict[str, Palette] = {
    "Grayscale": GRAYSCALE,
    "CGA": CGA,
    "EGA": EGA,
    "Gameboy": GAMEBOY,
    "C64": C64,
    "ZX Spectrum": ZX_SPECTRUM,
    "Apple II": APPLE_II,
}

PALETTE_NAMES: Tuple[str, ...] = tuple(NAMED_PALETTES) + (CUSTOM,)

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


def parse_hex(color: str) -> RGB:
    """Parse ``#RRGGBB`` (hash optional). Malformed input maps to black."""

    match = _HEX_RE.match(color.strip())
    if not match:
        log.debug("Unparseable colour %r, using black", color)
        return (0, 0, 0)
    return tuple(int(part, 16) for part in match.groups())  # type: ignore[return-value]


def to_hex(rgb: Sequence[int]) -> str:
    return "#" + "".join(f"{int(channel):02x}" for channel in rgb[:3])


def _coerce_color(color: ColorSpec) -> RGB:
    if isinstance(color, str):
        return parse_hex(color)
    r, g, b = (min(255, max(0, int(channel))) for channel in tuple(color)[:3])
    return (r, g, b)


def make_palette(colors: Iterable[ColorSpec]) -> Palette:
    palette = tuple(_coerce_color(color) for color in colors)
    if not palette:
        raise InvalidPalette("A palette needs at least one colour")
    return palette


def nearest(pixel: Sequence[float], palette: Sequence[RGB]) -> RGB:
    """Return the palette entry closest to ``pixel`` in RGB space.

    Ties keep the entry that appears first in ``palette``. Channels may be
    floats; only the first three are considered.
    """

    if not palette:
        raise InvalidPalette("Cannot quantize against an empty palette")

    r, g, b = pixel[0], pixel[1], pixel[2]
    best = palette[0]
    best_distance = float("inf")
    for color in palette:
        dr = r - color[0]
        dg = g - color[1]
        db = b - color[2]
        distance = dr * dr + dg * dg + db * db
        if distance < best_distance:
            best_distance = distance
            best = color
    return best


quantize = nearest


class PaletteRegistry:
    """Named palettes plus the single editable ``Custom`` slot.

    The custom palette is replaced by swapping in a fully built tuple under a
    lock, so concurrent readers see either the old or the new palette.
    """

    def __init__(self, custom: Palette = DEFAULT_CUSTOM) -> None:
        self._lock = threading.Lock()
        self._custom: Palette = custom

    def resolve(self, name: str) -> Palette:
        if name == CUSTOM:
            with self._lock:
                return self._custom
        try:
            return NAMED_PALETTES[name]
        except KeyError:
            raise InvalidPalette(f"Unknown palette: {name!r}") from None

    def set_custom(self, colors: Iterable[ColorSpec]) -> Palette:
        palette = make_palette(colors)
        with self._lock:
            self._custom = palette
        log.info("Custom palette replaced with %d colours", len(palette))
        return palette

    def reset_custom(self) -> None:
        with self._lock:
            self._custom = DEFAULT_CUSTOM

    def names(self) -> Tuple[str, ...]:
        return PALETTE_NAMES


REGISTRY = PaletteRegistry()


def resolve_palette(name: str) -> Palette:
    return REGISTRY.resolve(name)


def set_custom_palette(colors: Iterable[ColorSpec]) -> Palette:
    return REGISTRY.set_custom(colors)


def brightness(rgb: Sequence[int]) -> float:
    r, g, b = rgb[:3]
    return (r * 299 + g * 587 + b * 114) / 1000


def sort_by_brightness(palette: Sequence[RGB]) -> Palette:
    return tuple(sorted(palette, key=brightness))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def interpolate(palette: Sequence[RGB]) -> Palette:
    """Rebuild the inner entries as an even ramp between the first and last."""

    colors = list(palette)
    if len(colors) < 2:
        return tuple(colors)
    first, last = colors[0], colors[-1]
    steps = len(colors) - 1
    for i in range(1, steps):
        t = i / steps
        colors[i] = tuple(
            _round_half_up(first[c] + (last[c] - first[c]) * t) for c in range(3)
        )
    return tuple(colors)


def resize(palette: Sequence[RGB], steps: int) -> Palette:
    """Truncate to ``steps`` colours, or pad by repeating the last colour."""

    if steps < 1:
        raise InvalidPalette("A palette needs at least one colour")
    colors = list(palette)
    if not colors:
        raise InvalidPalette("Cannot resize an empty palette")
    if steps <= len(colors):
        return tuple(colors[:steps])
    return tuple(colors + [colors[-1]] * (steps - len(colors)))
