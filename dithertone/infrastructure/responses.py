from __future__ import annotations

import io
from typing import Optional

from flask import send_file
from PIL import Image

from .cache import remember_last_good


def png_bytes(img: Image.Image) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, "PNG", optimize=True)
    return buffer.getvalue()


def send_png_bytes(data: bytes, fallback_key: Optional[str] = None):
    if fallback_key:
        remember_last_good(fallback_key, data)
    return send_file(io.BytesIO(data), mimetype="image/png")


def send_png(img: Image.Image, fallback_key: Optional[str] = None):
    return send_png_bytes(png_bytes(img), fallback_key)
