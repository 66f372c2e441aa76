from __future__ import annotations

from .buffer import PixelBuffer, clamp, to_byte

MAX_TONE = 200


def adjust_tone(
    buf: PixelBuffer,
    contrast: float = 100,
    brightness: float = 100,
    saturation: float = 100,
) -> PixelBuffer:
    """Apply brightness, then contrast, then saturation, in place.

    All three are percentages where 100 leaves the image unchanged. Contrast
    pivots around 127.5 and saturation blends each channel toward or away from
    the Rec. 601 luma of the post-contrast pixel. Alpha is untouched.
    """

    contrast_factor = clamp(contrast, 0, MAX_TONE) / 100
    brightness_factor = clamp(brightness, 0, MAX_TONE) / 100
    saturation_factor = clamp(saturation, 0, MAX_TONE) / 100
    data = buf.data

    for i in range(0, len(data), 4):
        r = data[i] * brightness_factor
        g = data[i + 1] * brightness_factor
        b = data[i + 2] * brightness_factor

        r = ((r / 255 - 0.5) * contrast_factor + 0.5) * 255
        g = ((g / 255 - 0.5) * contrast_factor + 0.5) * 255
        b = ((b / 255 - 0.5) * contrast_factor + 0.5) * 255

        gray = 0.299 * r + 0.587 * g + 0.114 * b
        data[i] = to_byte(gray + (r - gray) * saturation_factor)
        data[i + 1] = to_byte(gray + (g - gray) * saturation_factor)
        data[i + 2] = to_byte(gray + (b - gray) * saturation_factor)

    return buf
