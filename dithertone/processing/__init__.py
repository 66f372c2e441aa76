"""Pixel-processing core: palettes, tone, filters, dithering and the pipeline."""

from .buffer import PixelBuffer
from .dither import DiffusionKernel, DitherAlgorithm, dither, resolve_algorithm
from .enhance import adjust_tone
from .filters import add_noise, blur, pixelate, sharpen
from .palette import (
    NAMED_PALETTES,
    PALETTE_NAMES,
    REGISTRY,
    PaletteRegistry,
    nearest,
    quantize,
    resolve_palette,
    set_custom_palette,
)
from .pipeline import PipelineConfig, run_pipeline

__all__ = [
    "PixelBuffer",
    "DiffusionKernel",
    "DitherAlgorithm",
    "dither",
    "resolve_algorithm",
    "adjust_tone",
    "add_noise",
    "blur",
    "pixelate",
    "sharpen",
    "NAMED_PALETTES",
    "PALETTE_NAMES",
    "REGISTRY",
    "PaletteRegistry",
    "nearest",
    "quantize",
    "resolve_palette",
    "set_custom_palette",
    "PipelineConfig",
    "run_pipeline",
]
