import random

import pytest
from PIL import Image

from conftest import make_gradient

from dithertone.errors import InvalidBuffer
from dithertone.processing.buffer import PixelBuffer
from dithertone.processing.dither import DitherAlgorithm, dither
from dithertone.processing.enhance import adjust_tone
from dithertone.processing.filters import add_noise, blur, pixelate, sharpen
from dithertone.processing.palette import GRAYSCALE, PaletteRegistry
from dithertone.processing.pipeline import PipelineConfig, run_pipeline


def _colors(buf):
    return {buf.get(x, y)[:3] for y in range(buf.height) for x in range(buf.width)}


def test_default_pipeline_reduces_to_grayscale(gradient):
    out = run_pipeline(gradient, PipelineConfig())

    assert out.size == (8, 6)
    assert _colors(out) <= set(GRAYSCALE)


def test_stage_order_matches_manual_composition():
    config = PipelineConfig(
        algorithm=DitherAlgorithm.JARVIS_JUDICE_NINKE,
        palette="ZX Spectrum",
        intensity=75,
        contrast=130,
        brightness=90,
        saturation=140,
        pixel_size=2,
        blur=1,
        sharpness=60,
        noise=12,
    )

    out = run_pipeline(make_gradient(12, 10), config, rng=random.Random(4))

    manual = blur(make_gradient(12, 10), 1)
    manual = adjust_tone(manual, 130, 90, 140)
    manual = sharpen(manual, 60)
    manual = add_noise(manual, 12, rng=random.Random(4))
    manual = pixelate(manual, 2)
    manual = dither(manual, DitherAlgorithm.JARVIS_JUDICE_NINKE, "ZX Spectrum", 75)

    assert out.size == (6, 5)
    assert out == manual


def test_out_of_range_values_are_clamped():
    config = PipelineConfig(pixel_size=100, blur=-3, noise=-5, intensity=400, sharpness=-1)

    clamped = config.clamped()
    out = run_pipeline(make_gradient(32, 32), config)

    assert (clamped.pixel_size, clamped.blur, clamped.noise, clamped.intensity) == (16, 0, 0, 100)
    assert out.size == (2, 2)


def test_config_carries_its_own_custom_palette(gradient):
    palette = ((255, 0, 0), (0, 0, 255))
    config = PipelineConfig(palette="Custom", custom_palette=palette)

    out = run_pipeline(gradient, config, registry=PaletteRegistry())

    assert _colors(out) <= set(palette)


def test_custom_palette_falls_back_to_registry(gradient):
    registry = PaletteRegistry()
    registry.set_custom(["#00ff00", "#ff00ff"])

    out = run_pipeline(gradient, PipelineConfig(palette="Custom"), registry=registry)

    assert _colors(out) <= {(0, 255, 0), (255, 0, 255)}


def test_from_mapping_accepts_strings_and_camel_case():
    config = PipelineConfig.from_mapping(
        {"algorithm": "atkinson", "pixelSize": "4", "contrast": "150", "source_url": "ignored"}
    )

    assert config.algorithm is DitherAlgorithm.ATKINSON
    assert config.pixel_size == 4
    assert config.contrast == 150.0
    assert config.palette == "Grayscale"


def test_from_mapping_rejects_unknown_names_and_bad_numbers():
    with pytest.raises(ValueError):
        PipelineConfig.from_mapping({"palette": "Amiga"})
    with pytest.raises(ValueError):
        PipelineConfig.from_mapping({"algorithm": "Stucki"})
    with pytest.raises(ValueError):
        PipelineConfig.from_mapping({"blur": "lots"})


def test_to_dict_round_trips_through_from_mapping():
    config = PipelineConfig(
        algorithm=DitherAlgorithm.BAYER_4X4,
        palette="Custom",
        pixel_size=3,
        custom_palette=((1, 2, 3), (250, 251, 252)),
    )

    assert PipelineConfig.from_mapping(config.to_dict(camel_case=True)) == config
    assert config.to_dict()["custom_palette"] == ["#010203", "#fafbfc"]


def test_determinism_flag():
    assert PipelineConfig().is_deterministic
    assert not PipelineConfig(noise=3).is_deterministic
    assert not PipelineConfig(algorithm=DitherAlgorithm.RANDOM).is_deterministic


def test_image_round_trip_and_invalid_buffers():
    img = Image.new("RGB", (3, 2), (10, 20, 30))

    buf = PixelBuffer.from_image(img)

    assert buf.get(2, 1) == (10, 20, 30, 255)
    assert buf.to_image().size == (3, 2)
    with pytest.raises(InvalidBuffer):
        PixelBuffer(0, 4)
    with pytest.raises(InvalidBuffer):
        PixelBuffer(2, 2, bytearray(3))


def test_nan_settings_fall_back_to_defaults(gradient):
    nan = float("nan")
    config = PipelineConfig(intensity=nan, contrast=nan, blur=nan, noise=nan)

    clamped = config.clamped()

    assert (clamped.intensity, clamped.contrast, clamped.blur, clamped.noise) == (100, 100, 0, 0)
    assert run_pipeline(gradient.copy(), config) == run_pipeline(gradient.copy(), PipelineConfig())
    with pytest.raises(ValueError):
        PipelineConfig.from_mapping({"intensity": "nan"})
    with pytest.raises(ValueError):
        PipelineConfig.from_mapping({"pixelSize": "inf"})
