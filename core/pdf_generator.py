"""
PDF assembly module.

Creates a paginated PDF with one full-page image per rendered slide.
Every page shares the physical size derived from the canvas pixel size
at 96 DPI.
"""
from __future__ import annotations

import io
import logging
from typing import Optional, Sequence, Tuple

import pymupdf

from config.defaults import APP_NAME, DEFAULT_DOCUMENT_TITLE
from .errors import EmptyInputError, PdfGenerationError
from .geometry import mm_to_points, px_to_mm
from .models import RasterSlide

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"


class PdfGenerator:
    """
    Builds PDF documents from rendered slides.

    Page size is computed once from the canvas size and applied to every
    page, so all pages of a document are identical in size.
    """

    def __init__(self, width_px: float, height_px: float):
        """
        Initialize the generator.

        Args:
            width_px: Canvas width in pixels.
            height_px: Canvas height in pixels.
        """
        self.width_mm = px_to_mm(width_px)
        self.height_mm = px_to_mm(height_px)
        self.width_pt = mm_to_points(self.width_mm)
        self.height_pt = mm_to_points(self.height_mm)
        logger.info(
            f"PdfGenerator initialized: {width_px:.1f}x{height_px:.1f}px "
            f"-> {self.width_mm:.1f}x{self.height_mm:.1f}mm"
        )

    def image_scale(self, image_width: int, image_height: int) -> Tuple[float, float]:
        """Points per image pixel that map the image onto the full page."""
        return (self.width_pt / image_width, self.height_pt / image_height)

    def generate_pdf(self, slides: Sequence[RasterSlide], title: Optional[str] = None) -> bytes:
        """
        Generate a PDF from rendered slides.

        Args:
            slides: Rasters in page order.
            title: Document title (falls back to "Presentation").

        Returns:
            PDF file bytes.

        Raises:
            EmptyInputError: If no slides are given.
            PdfGenerationError: If the document cannot be built or serialized.
        """
        if not slides:
            raise EmptyInputError()

        try:
            doc = pymupdf.open()
            try:
                for slide in slides:
                    self._add_page(doc, slide)
                doc.set_metadata({
                    "title": title or DEFAULT_DOCUMENT_TITLE,
                    "creator": APP_NAME,
                })
                pdf_bytes = doc.tobytes(garbage=3, deflate=True)
            finally:
                doc.close()
        except Exception as e:
            logger.error(f"Failed to generate PDF: {e}")
            raise PdfGenerationError(f"Failed to generate PDF: {e}") from e

        if pdf_bytes[:4] != PDF_SIGNATURE:
            raise PdfGenerationError("Generated document lacks the PDF signature")

        logger.info(f"PDF generated: {len(slides)} pages, {len(pdf_bytes)} bytes")
        return pdf_bytes

    def _add_page(self, doc: pymupdf.Document, slide: RasterSlide) -> None:
        """
        Append one page holding the slide image at full-page size.

        Args:
            doc: Target document.
            slide: Raster to place.
        """
        page = doc.new_page(width=self.width_pt, height=self.height_pt)

        # Lossless RGB for the PDF image stream
        image_stream = io.BytesIO()
        slide.image.convert("RGB").save(image_stream, format="PNG")

        scale_x, scale_y = self.image_scale(slide.width, slide.height)
        placement = pymupdf.Rect(0, 0, slide.width * scale_x, slide.height * scale_y)
        page.insert_image(placement, stream=image_stream.getvalue(), keep_proportion=False)


def assemble(slides: Sequence[RasterSlide], title: Optional[str] = None) -> bytes:
    """
    Assemble rasters into a PDF sized from the first raster.

    Raises:
        EmptyInputError: If no slides are given.
    """
    if not slides:
        raise EmptyInputError()
    return PdfGenerator(slides[0].width, slides[0].height).generate_pdf(slides, title)
