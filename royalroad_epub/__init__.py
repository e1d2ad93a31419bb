"""Download Royal Road stories as EPUB files."""

from __future__ import annotations

from .converter import ConversionOptions, ConversionResult, EpubConverter

__all__ = [
    "ConversionOptions",
    "ConversionResult",
    "EpubConverter",
]

__version__ = "0.1.0"
