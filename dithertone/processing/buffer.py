from __future__ import annotations

from typing import Tuple

from PIL import Image

from ..errors import InvalidBuffer

RGBA = Tuple[int, int, int, int]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` to ``[low, high]``; NaN falls to ``low``."""

    if not value >= low:
        return low
    return high if value > high else value


def clamp_channel(value: float) -> float:
    return clamp(value, 0.0, 255.0)


def to_byte(value: float) -> int:
    """Store ``value`` the way an 8-bit clamped channel does.

    Values are clamped to [0, 255] and rounded half to even, so 127.5 becomes
    128 and 126.5 becomes 126. NaN stores as 0.
    """

    if not value > 0:
        return 0
    if value >= 255:
        return 255
    return int(round(value))


class PixelBuffer:
    """Row-major RGBA raster with 8-bit channels."""

    __slots__ = ("width", "height", "data")

    def __init__(self, width: int, height: int, data: bytearray | None = None) -> None:
        if width < 1 or height < 1:
            raise InvalidBuffer(f"Buffer must be at least 1x1, got {width}x{height}")
        expected = width * height * 4
        if data is None:
            data = bytearray(expected)
        elif len(data) != expected:
            raise InvalidBuffer(
                f"Expected {expected} bytes for {width}x{height} RGBA, got {len(data)}"
            )
        self.width = width
        self.height = height
        self.data = data if isinstance(data, bytearray) else bytearray(data)

    @classmethod
    def new(cls, width: int, height: int, fill: RGBA = (0, 0, 0, 255)) -> "PixelBuffer":
        return cls(width, height, bytearray(bytes(fill) * (width * height)))

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        rgba = img.convert("RGBA")
        width, height = rgba.size
        return cls(width, height, bytearray(rgba.tobytes()))

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), bytes(self.data))

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, bytearray(self.data))

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def index(self, x: int, y: int) -> int:
        return (y * self.width + x) * 4

    def get(self, x: int, y: int) -> RGBA:
        i = self.index(x, y)
        data = self.data
        return data[i], data[i + 1], data[i + 2], data[i + 3]

    def set_rgb(self, x: int, y: int, r: float, g: float, b: float) -> None:
        i = self.index(x, y)
        data = self.data
        data[i] = to_byte(r)
        data[i + 1] = to_byte(g)
        data[i + 2] = to_byte(b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and self.data == other.data

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"
