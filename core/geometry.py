"""
Coordinate conversion utilities.

Converts between PowerPoint EMUs (English Metric Units), canvas pixels
and physical page units used by the PDF writer.
"""
from __future__ import annotations

from typing import Tuple

from config.defaults import (
    DEFAULT_SLIDE_HEIGHT_EMU,
    DEFAULT_SLIDE_WIDTH_EMU,
    EMU_PER_INCH,
    MM_PER_INCH,
    POINTS_PER_INCH,
    RENDER_DPI,
)


def emu_to_px(emu: float, dpi: int = RENDER_DPI) -> float:
    """
    Convert EMU to pixels.

    Args:
        emu: EMU value.
        dpi: Target DPI (default: 96).

    Returns:
        Pixel value as float (not rounded).

    Example:
        >>> emu_to_px(914400)  # 1 inch at 96 DPI
        96.0
    """
    return emu / EMU_PER_INCH * dpi


def px_to_mm(pixels: float, dpi: int = RENDER_DPI) -> float:
    """Convert pixels to millimetres (mm = px / dpi * 25.4)."""
    return pixels / dpi * MM_PER_INCH


def mm_to_points(mm: float) -> float:
    """Convert millimetres to PDF points (1/72 inch)."""
    return mm / MM_PER_INCH * POINTS_PER_INCH


def default_canvas_size() -> Tuple[float, float]:
    """Pixel size of the standard 16:9 slide (960 x 540 at 96 DPI)."""
    return (
        emu_to_px(DEFAULT_SLIDE_WIDTH_EMU),
        emu_to_px(DEFAULT_SLIDE_HEIGHT_EMU),
    )


def canvas_pixels(width_px: float, height_px: float) -> Tuple[int, int]:
    """
    Round a fractional canvas size to whole pixels.

    Args:
        width_px: Canvas width in pixels.
        height_px: Canvas height in pixels.

    Returns:
        Tuple of (width, height), each at least 1.
    """
    return (max(1, int(round(width_px))), max(1, int(round(height_px))))
