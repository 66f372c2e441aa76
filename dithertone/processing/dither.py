from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

from ..errors import InvalidPalette
from .buffer import PixelBuffer, clamp, clamp_channel, to_byte
from .filters import RandomSource
from .palette import RGB, Palette, REGISTRY, PaletteRegistry, nearest

log = logging.getLogger(__name__)

MAX_INTENSITY = 100

_RNG = random.Random()


class DitherAlgorithm(str, Enum):
    FLOYD_STEINBERG = "Floyd-Steinberg"
    JARVIS_JUDICE_NINKE = "Jarvis-Judice-Ninke"
    SIERRA = "Sierra"
    ATKINSON = "Atkinson"
    ORDERED = "Ordered"
    BAYER_2X2 = "Bayer 2x2"
    BAYER_4X4 = "Bayer 4x4"
    BAYER_8X8 = "Bayer 8x8"
    RANDOM = "Random"

    @classmethod
    def parse(cls, value: Union[str, "DitherAlgorithm"]) -> "DitherAlgorithm":
        """Match a display name or member name, ignoring case and punctuation."""

        if isinstance(value, cls):
            return value
        key = _normalize(str(value))
        for member in cls:
            if key in (_normalize(member.value), _normalize(member.name)):
                return member
        raise ValueError(f"Unknown dithering algorithm: {value!r}")

    @property
    def is_random(self) -> bool:
        return self is DitherAlgorithm.RANDOM


def _normalize(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def resolve_algorithm(value: Union[str, DitherAlgorithm]) -> DitherAlgorithm:
    try:
        return DitherAlgorithm.parse(value)
    except ValueError:
        log.warning("Unknown dithering algorithm %r, using Floyd-Steinberg", value)
        return DitherAlgorithm.FLOYD_STEINBERG


@dataclass(frozen=True)
class DiffusionKernel:
    """Neighbour offsets ``(dx, dy, weight)``; each receives ``error * weight / divisor``."""

    name: str
    offsets: Tuple[Tuple[int, int, int], ...]
    divisor: int

    def total(self) -> Fraction:
        return Fraction(sum(weight for _, _, weight in self.offsets), self.divisor)


FLOYD_STEINBERG = DiffusionKernel(
    "Floyd-Steinberg",
    ((1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1)),
    16,
)

JARVIS_JUDICE_NINKE = DiffusionKernel(
    "Jarvis-Judice-Ninke",
    (
        (1, 0, 7), (2, 0, 5),
        (-2, 1, 3), (-1, 1, 5), (0, 1, 7), (1, 1, 5), (2, 1, 3),
        (-2, 2, 1), (-1, 2, 3), (0, 2, 5), (1, 2, 3), (2, 2, 1),
    ),
    48,
)

SIERRA = DiffusionKernel(
    "Sierra",
    (
        (1, 0, 5), (2, 0, 3),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 5), (1, 1, 4), (2, 1, 2),
        (-1, 2, 2), (0, 2, 3), (1, 2, 2),
    ),
    32,
)

# Atkinson spreads only 6/8 of the error; the lost quarter is what gives it
# its characteristic contrast.
ATKINSON = DiffusionKernel(
    "Atkinson",
    ((1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1)),
    8,
)


def error_diffusion(
    buf: PixelBuffer, palette: Palette, kernel: DiffusionKernel, intensity: float
) -> PixelBuffer:
    """Quantize in raster order, pushing scaled error onto unvisited neighbours."""

    width, height = buf.size
    data = buf.data
    offsets = kernel.offsets
    divisor = kernel.divisor
    closest: Dict[Tuple[int, int, int], RGB] = {}

    for y in range(height):
        for x in range(width):
            idx = (y * width + x) * 4
            old = (data[idx], data[idx + 1], data[idx + 2])
            new = closest.get(old)
            if new is None:
                new = closest[old] = nearest(old, palette)

            data[idx], data[idx + 1], data[idx + 2] = new

            err_r = (old[0] - new[0]) * intensity
            err_g = (old[1] - new[1]) * intensity
            err_b = (old[2] - new[2]) * intensity
            if not (err_r or err_g or err_b):
                continue

            for dx, dy, weight in offsets:
                nx = x + dx
                ny = y + dy
                if nx < 0 or nx >= width or ny >= height:
                    continue
                n = (ny * width + nx) * 4
                data[n] = to_byte(data[n] + err_r * weight / divisor)
                data[n + 1] = to_byte(data[n + 1] + err_g * weight / divisor)
                data[n + 2] = to_byte(data[n + 2] + err_b * weight / divisor)

    return buf


ORDERED_MATRIX = (
    (0, 8, 2, 10),
    (12, 4, 14, 6),
    (3, 11, 1, 9),
    (15, 7, 13, 5),
)

BAYER_2X2 = (
    (0, 2),
    (3, 1),
)

BAYER_4X4 = ORDERED_MATRIX

BAYER_8X8 = (
    (0, 32, 8, 40, 2, 34, 10, 42),
    (48, 16, 56, 24, 50, 18, 58, 26),
    (12, 44, 4, 36, 14, 46, 6, 38),
    (60, 28, 52, 20, 62, 30, 54, 22),
    (3, 35, 11, 43, 1, 33, 9, 41),
    (51, 19, 59, 27, 49, 17, 57, 25),
    (15, 47, 7, 39, 13, 45, 5, 37),
    (63, 31, 55, 23, 61, 29, 53, 21),
)

ORDERED_GAIN = 32
BAYER_GAIN = 64
RANDOM_GAIN = 64


def _quantize_offset(data: bytearray, idx: int, offset: float, palette: Palette) -> None:
    r = clamp_channel(data[idx] + offset)
    g = clamp_channel(data[idx + 1] + offset)
    b = clamp_channel(data[idx + 2] + offset)
    data[idx], data[idx + 1], data[idx + 2] = nearest((r, g, b), palette)


def ordered(
    buf: PixelBuffer,
    palette: Palette,
    matrix: Sequence[Sequence[int]],
    intensity: float,
    gain: float,
) -> PixelBuffer:
    """Threshold-matrix dithering; every pixel is independent of the others."""

    width, height = buf.size
    data = buf.data
    size = len(matrix)
    cells = size * size
    # One offset per matrix cell, shared by every tile.
    offsets = [
        [(value / cells - 0.5) * intensity * gain for value in row] for row in matrix
    ]

    for y in range(height):
        row = offsets[y % size]
        for x in range(width):
            _quantize_offset(data, (y * width + x) * 4, row[x % size], palette)

    return buf


def random_threshold(
    buf: PixelBuffer,
    palette: Palette,
    intensity: float,
    rng: Optional[RandomSource] = None,
) -> PixelBuffer:
    rng = rng or _RNG
    data = buf.data
    for idx in range(0, len(data), 4):
        noise = (rng.random() - 0.5) * intensity * RANDOM_GAIN
        _quantize_offset(data, idx, noise, palette)
    return buf


Ditherer = Callable[[PixelBuffer, Palette, float, Optional[RandomSource]], PixelBuffer]


def _diffuse(kernel: DiffusionKernel) -> Ditherer:
    return lambda buf, palette, intensity, rng: error_diffusion(buf, palette, kernel, intensity)


def _threshold(matrix: Sequence[Sequence[int]], gain: float) -> Ditherer:
    return lambda buf, palette, intensity, rng: ordered(buf, palette, matrix, intensity, gain)


DITHERERS: Dict[DitherAlgorithm, Ditherer] = {
    DitherAlgorithm.FLOYD_STEINBERG: _diffuse(FLOYD_STEINBERG),
    DitherAlgorithm.JARVIS_JUDICE_NINKE: _diffuse(JARVIS_JUDICE_NINKE),
    DitherAlgorithm.SIERRA: _diffuse(SIERRA),
    DitherAlgorithm.ATKINSON: _diffuse(ATKINSON),
    DitherAlgorithm.ORDERED: _threshold(ORDERED_MATRIX, ORDERED_GAIN),
    DitherAlgorithm.BAYER_2X2: _threshold(BAYER_2X2, BAYER_GAIN),
    DitherAlgorithm.BAYER_4X4: _threshold(BAYER_4X4, BAYER_GAIN),
    DitherAlgorithm.BAYER_8X8: _threshold(BAYER_8X8, BAYER_GAIN),
    DitherAlgorithm.RANDOM: random_threshold,
}


def dither(
    buf: PixelBuffer,
    algorithm: Union[str, DitherAlgorithm] = DitherAlgorithm.FLOYD_STEINBERG,
    palette: Union[str, Sequence[RGB]] = "Grayscale",
    intensity: float = 100,
    rng: Optional[RandomSource] = None,
    registry: PaletteRegistry = REGISTRY,
) -> PixelBuffer:
    """Reduce ``buf`` to ``palette`` in place and return it.

    ``palette`` is either a registry name or an explicit list of colours.
    ``intensity`` is a percentage scaling the diffused error or threshold
    offset; 0 gives plain nearest-colour mapping and values outside 0-100
    are clamped.
    """

    method = resolve_algorithm(algorithm)
    colors = registry.resolve(palette) if isinstance(palette, str) else tuple(palette)
    if not colors:
        raise InvalidPalette("Cannot dither onto an empty palette")
    log.debug("Dithering %r with %s onto %d colours", buf, method.value, len(colors))
    return DITHERERS[method](buf, colors, clamp(intensity, 0, MAX_INTENSITY) / 100, rng)
