from __future__ import annotations  # Re-export extraction public API

from .extraction import SUPPORTED_EXTENSIONS, ExtractionError, extract_text  # noqa: F401

__all__ = ["ExtractionError", "SUPPORTED_EXTENSIONS", "extract_text"]
