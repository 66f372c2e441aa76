"""Exceptions raised by the processing core."""

from __future__ import annotations


class DithertoneError(ValueError):
    """Base class for conditions the core refuses to absorb."""


class InvalidPalette(DithertoneError):
    """Raised for an empty palette or an unknown palette name."""


class InvalidBuffer(DithertoneError):
    """Raised for a pixel buffer with no pixels or inconsistent storage."""
