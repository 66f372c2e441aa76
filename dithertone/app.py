from __future__ import annotations

import io
import logging

from flask import Flask, abort, g, jsonify, request, send_file
from PIL import Image, UnidentifiedImageError

from .config import SETTINGS, configure_logging
from .errors import DithertoneError
from .infrastructure.cache import CACHE, cache_key, last_good_png
from .infrastructure.network import FETCHER, SourceError
from .infrastructure.presets import PRESETS
from .infrastructure.responses import png_bytes, send_png, send_png_bytes
from .processing.buffer import PixelBuffer
from .processing.palette import NAMED_PALETTES, PALETTE_NAMES, REGISTRY, to_hex
from .processing.pipeline import PipelineConfig, run_pipeline

APP_VERSION = "1.0.0"

log = logging.getLogger(__name__)


def default_config() -> PipelineConfig:
    return PipelineConfig.from_mapping(
        {
            "algorithm": SETTINGS.default_algorithm,
            "palette": SETTINGS.default_palette,
            "intensity": SETTINGS.default_intensity,
        }
    )


def request_config(values) -> PipelineConfig:
    """Defaults, then the named preset if any, then explicit request fields."""

    base = default_config()
    preset_name = values.get("preset")
    if preset_name:
        preset = PRESETS.get(preset_name)
        if preset is None:
            abort(404, description=f"Unknown preset: {preset_name!r}")
        base = preset
    return PipelineConfig.from_mapping(values, base=base)


def _decode_upload(upload) -> Image.Image:
    try:
        img = Image.open(upload.stream)
        _check_size(img)
        return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Could not decode uploaded image: {exc}") from None


def _check_size(img: Image.Image) -> None:
    width, height = img.size
    if width * height > SETTINGS.max_pixels:
        raise ValueError(
            f"Image is {width}x{height}; at most {SETTINGS.max_pixels} pixels are accepted"
        )


def _fetch(source_url: str | None, fallback_key: str) -> Image.Image:
    g.fallback_key = fallback_key
    return FETCHER.fetch_source(source_url)


def _palette_payload(name: str) -> dict:
    return {"name": name, "colors": [to_hex(rgb) for rgb in REGISTRY.resolve(name)]}


def create_app() -> Flask:
    configure_logging()
    app = Flask(__name__)

    @app.errorhandler(DithertoneError)
    @app.errorhandler(ValueError)
    def bad_request(exc):
        return jsonify(error=str(exc)), 400

    @app.errorhandler(404)
    def not_found(exc):
        return jsonify(error=exc.description), 404

    @app.errorhandler(SourceError)
    def source_error(exc):
        cached = last_good_png(g.get("fallback_key"))
        if cached and request.args.get("fallback", "1") != "0":
            log.warning("Serving last good image after source error: %s", exc)
            return send_file(io.BytesIO(cached), mimetype="image/png")
        return jsonify(error=f"Source Error: {exc}"), 502

    @app.route("/dither", methods=["GET", "POST"])
    def dither_image():
        values = request.values
        config = request_config(values)
        upload = request.files.get("image")

        if upload is not None:
            src = _decode_upload(upload)
            key = fallback_key = None
        else:
            source_url = values.get("source_url") or SETTINGS.source_url
            fallback_key = cache_key(source_url, config)
            key = fallback_key if config.is_deterministic else None
            cached = CACHE.get(key) if key else None
            if cached:
                return send_png_bytes(cached, fallback_key)
            src = _fetch(source_url or None, fallback_key)
            _check_size(src)

        out = run_pipeline(PixelBuffer.from_image(src), config)
        data = png_bytes(out.to_image())
        if key:
            CACHE.put(key, data)
        return send_png_bytes(data, fallback_key)

    @app.route("/raw")
    def raw():
        source_url = request.args.get("source_url")
        fallback_key = f"raw|{source_url or SETTINGS.source_url}"
        return send_png(_fetch(source_url, fallback_key), fallback_key)

    @app.route("/palettes")
    def palettes():
        return jsonify(palettes=[_palette_payload(name) for name in PALETTE_NAMES])

    @app.route("/palettes/<name>")
    def palette_view(name: str):
        if name not in PALETTE_NAMES:
            abort(404, description=f"Unknown palette: {name!r}")
        return jsonify(_palette_payload(name))

    @app.route("/palettes/custom", methods=["GET", "PUT"])
    def custom_palette():
        if request.method == "GET":
            return jsonify(_palette_payload("Custom"))
        payload = request.get_json(silent=True) or {}
        colors = payload.get("colors")
        if not isinstance(colors, list):
            raise ValueError("Expected a JSON body like {\"colors\": [\"#000000\", ...]}")
        REGISTRY.set_custom(colors)
        CACHE.clear()
        return jsonify(_palette_payload("Custom"))

    @app.route("/presets", methods=["GET", "POST"])
    def presets():
        if request.method == "GET":
            return jsonify(presets=PRESETS.list())
        payload = request.get_json(silent=True) or {}
        settings = payload.get("settings") or {}
        preset = PRESETS.save(
            payload.get("name", ""), PipelineConfig.from_mapping(settings, base=default_config())
        )
        return jsonify(preset), 201

    @app.route("/presets/<name>", methods=["GET", "DELETE"])
    def preset_view(name: str):
        if request.method == "DELETE":
            if not PRESETS.delete(name):
                abort(404, description=f"Unknown preset: {name!r}")
            return jsonify(deleted=name)
        config = PRESETS.get(name)
        if config is None:
            abort(404, description=f"Unknown preset: {name!r}")
        return jsonify(name=name, settings=config.to_dict(camel_case=True))

    @app.route("/health")
    def health():
        return jsonify(
            ok=True,
            version=APP_VERSION,
            palettes=list(PALETTE_NAMES),
            named_palettes=len(NAMED_PALETTES),
            cached=len(CACHE),
        )

    @app.route("/")
    def index():
        return jsonify(
            version=APP_VERSION,
            endpoints={
                "/dither": "POST an 'image' file (or pass source_url) with pipeline fields",
                "/raw": "Fetched source image without processing",
                "/palettes": "Built-in and custom palettes",
                "/palettes/custom": "PUT {\"colors\": [...]} to replace the custom palette",
                "/presets": "Saved pipeline presets",
                "/health": "Service status",
            },
        )

    return app


# Expose a module-level Flask application for WSGI servers (``dithertone.app:app``).
app = create_app()
application = app
