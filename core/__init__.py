"""
Core business logic package.

Contains PPTX extraction, slide parsing, rasterization, PDF assembly
and the pipeline that sequences them.
"""
from .errors import (
    ConversionCancelled,
    ConversionError,
    CorruptArchiveError,
    EmptyInputError,
    ImageDecodeError,
    InvalidExtensionError,
    NoSlidesFoundError,
    PackageNotFoundError,
    PdfGenerationError,
    RetryExhaustedError,
    SlideNotFoundError,
    StageError,
    XmlParseError,
)
from .geometry import (
    canvas_pixels,
    default_canvas_size,
    emu_to_px,
    mm_to_points,
    px_to_mm,
)
from .models import (
    ConversionProgress,
    MediaAsset,
    MediaRegion,
    PackageMetadata,
    RasterSlide,
    Scene,
    ShapeRegion,
    SlideRecord,
    TextRegion,
)
from .pdf_generator import PdfGenerator, assemble
from .pipeline import (
    ConversionPipeline,
    PipelineState,
    convert,
    convert_with_retry,
    get_metadata,
)
from .pptx_extractor import PptxExtractor
from .slide_parser import SlideParser, collect_image_references, parse_slide
from .slide_renderer import SlideRenderer, render_scene

__all__ = [
    # Pipeline
    "ConversionPipeline",
    "PipelineState",
    "get_metadata",
    "convert",
    "convert_with_retry",
    # Stages
    "PptxExtractor",
    "SlideParser",
    "parse_slide",
    "collect_image_references",
    "SlideRenderer",
    "render_scene",
    "PdfGenerator",
    "assemble",
    # Geometry
    "emu_to_px",
    "px_to_mm",
    "mm_to_points",
    "canvas_pixels",
    "default_canvas_size",
    # Models
    "PackageMetadata",
    "SlideRecord",
    "MediaAsset",
    "TextRegion",
    "MediaRegion",
    "ShapeRegion",
    "Scene",
    "RasterSlide",
    "ConversionProgress",
    # Errors
    "ConversionError",
    "PackageNotFoundError",
    "InvalidExtensionError",
    "CorruptArchiveError",
    "NoSlidesFoundError",
    "SlideNotFoundError",
    "XmlParseError",
    "ImageDecodeError",
    "PdfGenerationError",
    "EmptyInputError",
    "ConversionCancelled",
    "StageError",
    "RetryExhaustedError",
]
