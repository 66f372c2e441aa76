"""Neighbourhood and per-pixel filters that run before dithering."""

from __future__ import annotations

import math
import random
from typing import Optional, Protocol

from .buffer import PixelBuffer, clamp, to_byte

MAX_BLUR = 10
MAX_SHARPNESS = 200
MAX_PIXEL_SIZE = 16
MAX_NOISE = 50

_SHARPEN_KERNEL = (
    (0, -1, 0),
    (-1, 5, -1),
    (0, -1, 0),
)


class RandomSource(Protocol):
    def random(self) -> float: ...


_RNG = random.Random()


def blur(buf: PixelBuffer, radius: float) -> PixelBuffer:
    """Box blur over a ``(2r+1)`` square, averaging only in-bounds samples.

    Window sums come from a per-channel summed-area table, so the cost per
    pixel does not grow with the radius.
    """

    kernel = int(math.floor(clamp(radius, 0, MAX_BLUR)))
    if kernel <= 0:
        return buf

    width, height = buf.size
    src = buf.data
    out = PixelBuffer(width, height)
    dst = out.data

    # sums[(y + 1) * stride + x + 1] covers the rectangle (0, 0)..(x, y)
    stride = width + 1
    sum_r = [0] * (stride * (height + 1))
    sum_g = [0] * (stride * (height + 1))
    sum_b = [0] * (stride * (height + 1))
    for y in range(height):
        above = y * stride + 1
        here = above + stride
        row_r = row_g = row_b = 0
        for x in range(width):
            idx = (y * width + x) * 4
            row_r += src[idx]
            row_g += src[idx + 1]
            row_b += src[idx + 2]
            sum_r[here + x] = sum_r[above + x] + row_r
            sum_g[here + x] = sum_g[above + x] + row_g
            sum_b[here + x] = sum_b[above + x] + row_b

    for y in range(height):
        y0 = max(0, y - kernel)
        y1 = min(height - 1, y + kernel)
        top = y0 * stride
        bottom = (y1 + 1) * stride
        for x in range(width):
            left = max(0, x - kernel)
            right = min(width - 1, x + kernel) + 1
            r = sum_r[bottom + right] - sum_r[top + right] - sum_r[bottom + left] + sum_r[top + left]
            g = sum_g[bottom + right] - sum_g[top + right] - sum_g[bottom + left] + sum_g[top + left]
            b = sum_b[bottom + right] - sum_b[top + right] - sum_b[bottom + left] + sum_b[top + left]
            count = (y1 - y0 + 1) * (right - left)
            idx = (y * width + x) * 4
            dst[idx] = to_byte(r / count)
            dst[idx + 1] = to_byte(g / count)
            dst[idx + 2] = to_byte(b / count)
            dst[idx + 3] = src[idx + 3]

    return out


def sharpen(buf: PixelBuffer, amount: float) -> PixelBuffer:
    """Blend a 3x3 sharpen convolution into the image by ``amount`` percent.

    Only interior pixels are convolved; the outermost rows and columns are
    copied from the source unchanged.
    """

    amount = clamp(amount, 0, MAX_SHARPNESS)
    if amount <= 0:
        return buf

    width, height = buf.size
    src = buf.data
    out = PixelBuffer(width, height, bytearray(src))
    dst = out.data
    factor = amount / 100

    for y in range(1, height - 1):
        for x in range(1, width - 1):
            r = g = b = 0
            for ky in range(-1, 2):
                row = (y + ky) * width
                weights = _SHARPEN_KERNEL[ky + 1]
                for kx in range(-1, 2):
                    weight = weights[kx + 1]
                    if not weight:
                        continue
                    idx = (row + x + kx) * 4
                    r += src[idx] * weight
                    g += src[idx + 1] * weight
                    b += src[idx + 2] * weight

            idx = (y * width + x) * 4
            orig_r, orig_g, orig_b = src[idx], src[idx + 1], src[idx + 2]
            dst[idx] = to_byte(orig_r + (r - orig_r) * factor)
            dst[idx + 1] = to_byte(orig_g + (g - orig_g) * factor)
            dst[idx + 2] = to_byte(orig_b + (b - orig_b) * factor)

    return out


def pixelate(buf: PixelBuffer, scale: float) -> PixelBuffer:
    """Nearest-neighbour downsample by ``scale``.

    Each output pixel is the top-left pixel of its ``scale x scale`` block, so
    the result is ``floor(W/scale) x floor(H/scale)``. A dimension never drops
    below one pixel.
    """

    step = int(math.floor(clamp(scale, 1, MAX_PIXEL_SIZE)))
    if step <= 1:
        return buf

    width, height = buf.size
    new_width = max(1, width // step)
    new_height = max(1, height // step)
    src = buf.data
    out = PixelBuffer(new_width, new_height)
    dst = out.data

    for y in range(new_height):
        src_row = y * step * width
        for x in range(new_width):
            src_idx = (src_row + x * step) * 4
            dst_idx = (y * new_width + x) * 4
            dst[dst_idx:dst_idx + 4] = src[src_idx:src_idx + 4]

    return out


def add_noise(
    buf: PixelBuffer, amount: float, rng: Optional[RandomSource] = None
) -> PixelBuffer:
    """Add one uniform value in ``[-amount, amount)`` to R, G and B of each pixel."""

    amount = clamp(amount, 0, MAX_NOISE)
    if amount <= 0:
        return buf

    rng = rng or _RNG
    data = buf.data
    spread = amount * 2
    for i in range(0, len(data), 4):
        noise = (rng.random() - 0.5) * spread
        data[i] = to_byte(data[i] + noise)
        data[i + 1] = to_byte(data[i + 1] + noise)
        data[i + 2] = to_byte(data[i + 2] + noise)

    return buf
