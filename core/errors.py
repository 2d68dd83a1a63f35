"""
Conversion error hierarchy.

Only structurally fatal conditions are raised; anomalies with a safe
default (missing descriptor, missing title, missing relationship part,
unresolved media reference) are absorbed where they are found.
"""
from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """Base class for all conversion failures."""


class PackageNotFoundError(ConversionError, FileNotFoundError):
    """The input path does not exist."""

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}")
        self.path = path


class InvalidExtensionError(ConversionError):
    """The input path does not carry a presentation extension."""

    def __init__(self, path: str):
        super().__init__(
            f"Invalid file format: {path}. Only .pptx files are supported."
        )
        self.path = path


class CorruptArchiveError(ConversionError):
    """The input is not a readable zip archive."""


class NoSlidesFoundError(ConversionError):
    """The package contains no slide parts."""

    def __init__(self):
        super().__init__("No slides found in PPTX file. File may be corrupted.")


class SlideNotFoundError(ConversionError):
    """The requested slide part is absent."""

    def __init__(self, index: int):
        super().__init__(f"Slide {index + 1} not found")
        self.index = index


class XmlParseError(ConversionError):
    """A part is not well-formed XML."""


class ImageDecodeError(ConversionError):
    """Embedded media bytes could not be decoded as an image."""

    def __init__(self, asset_id: str, reason: str):
        super().__init__(f"Failed to decode image {asset_id}: {reason}")
        self.asset_id = asset_id


class PdfGenerationError(ConversionError):
    """The PDF writer failed to build or serialize the document."""


class EmptyInputError(ConversionError):
    """The page assembler was given no rasters."""

    def __init__(self):
        super().__init__("Empty input: no slides to generate PDF")


class ConversionCancelled(ConversionError):
    """The job's stop event was set."""

    def __init__(self, stage: str):
        super().__init__(f"Conversion cancelled during: {stage}")
        self.stage = stage


class StageError(ConversionError):
    """A propagated error wrapped with the pipeline stage it happened in."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


class RetryExhaustedError(ConversionError):
    """Every attempt of a retried conversion failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        super().__init__(
            f"Conversion failed after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error
