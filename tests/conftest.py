import pytest

from dithertone.processing.buffer import PixelBuffer
from dithertone.processing.palette import REGISTRY


@pytest.fixture(autouse=True)
def reset_custom_palette():
    yield
    REGISTRY.reset_custom()


def make_gradient(width: int = 8, height: int = 6) -> PixelBuffer:
    buf = PixelBuffer(width, height)
    for y in range(height):
        for x in range(width):
            i = buf.index(x, y)
            buf.data[i] = (x * 255) // max(1, width - 1)
            buf.data[i + 1] = (y * 255) // max(1, height - 1)
            buf.data[i + 2] = ((x + y) * 37) % 256
            buf.data[i + 3] = 200 + x
    return buf


@pytest.fixture
def gradient() -> PixelBuffer:
    return make_gradient()
