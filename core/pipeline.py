"""
Conversion pipeline orchestration.

Sequences extraction, slide reading, rendering and PDF assembly for one
package, reports progress through an injected callback, and retries the
whole pipeline on failure.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from config.defaults import ASSEMBLY_PERCENTAGE
from config.settings_manager import ConverterSettings
from .errors import ConversionCancelled, ConversionError, RetryExhaustedError, StageError
from .models import ConversionProgress, PackageMetadata, RasterSlide, Scene, SlideRecord
from .pdf_generator import PdfGenerator
from .pptx_extractor import PptxExtractor
from .slide_parser import SlideParser
from .slide_renderer import SlideRenderer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ConversionProgress], None]
PathLike = Union[str, Path]


class PipelineState(Enum):
    """Stages of one conversion job."""
    IDLE = "idle"
    EXTRACTING = "extracting"
    READING_SLIDES = "reading_slides"
    RENDERING = "rendering"
    ASSEMBLING = "assembling"
    COMPLETE = "complete"
    FAILED = "failed"


def _percentage(current: int, total: int) -> float:
    return current / total * 100.0 if total else 0.0


class ConversionPipeline:
    """
    Runs PPTX to PDF conversions.

    One instance drives one job at a time. Concurrent jobs should use
    separate instances, each opening its own package handle.
    """

    def __init__(
        self,
        settings: Optional[ConverterSettings] = None,
        progress_callback: Optional[ProgressCallback] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Converter settings (defaults when omitted).
            progress_callback: Receives ConversionProgress notifications.
                Failures inside the callback are logged and ignored.
            stop_event: Optional event to signal cancellation.
        """
        self.settings = settings or ConverterSettings()
        self.progress_callback = progress_callback
        self.stop_event = stop_event or threading.Event()
        self.state = PipelineState.IDLE
        self._percentage = 0.0

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get_metadata(self, file_path: PathLike) -> PackageMetadata:
        """Read package metadata without converting."""
        with PptxExtractor(file_path) as extractor:
            return extractor.extract_metadata()

    def convert(self, file_path: PathLike) -> bytes:
        """
        Convert a package to PDF bytes.

        Raises:
            StageError: A stage failed; the original error is the cause.
            ConversionCancelled: The stop event was set.
        """
        self._set_state(PipelineState.IDLE)
        self._percentage = 0.0
        try:
            return self._run(file_path)
        except Exception as e:
            self._set_state(PipelineState.FAILED)
            logger.error(f"Conversion failed: {e}")
            raise

    def convert_with_retry(self, file_path: PathLike, max_retries: Optional[int] = None) -> bytes:
        """
        Convert with whole-pipeline retries.

        Every attempt restarts from extraction; nothing from a failed
        attempt is reused. Zero retries means exactly one attempt.

        Args:
            file_path: Package path.
            max_retries: Retries after the first attempt (settings value
                when omitted).

        Raises:
            RetryExhaustedError: All attempts failed.
            ConversionCancelled: The stop event was set.
        """
        retries = self.settings.max_retries if max_retries is None else max_retries
        if retries < 0:
            raise ValueError("max_retries cannot be negative")

        last_error: Optional[Exception] = None
        for attempt in range(retries + 1):
            if attempt > 0:
                self._emit(f"Retry attempt {attempt}/{retries}", 0, 100, 0.0, force=True)

            try:
                return self.convert(file_path)
            except ConversionCancelled:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"Attempt {attempt + 1}/{retries + 1} failed: {e}")

            if attempt < retries and self.stop_event.wait(self.settings.retry_delay_seconds):
                raise ConversionCancelled("waiting to retry") from last_error

        raise RetryExhaustedError(retries + 1, last_error) from last_error

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(self, file_path: PathLike) -> bytes:
        self._set_state(PipelineState.EXTRACTING)
        self._emit("Extracting PPTX", 0, 100, 0.0)

        try:
            extractor = PptxExtractor(file_path)
        except ConversionError as e:
            raise StageError("extracting", f"Extraction failed: {e}") from e

        with extractor:
            try:
                metadata = extractor.extract_metadata()
            except ConversionError as e:
                raise StageError("extracting", f"Failed to read PPTX metadata: {e}") from e

            slide_count = metadata.slide_count
            total = slide_count + 2
            self._emit("Extracting slides", 1, total, _percentage(1, total))

            self._set_state(PipelineState.READING_SLIDES)
            slides = self._read_slides(extractor, slide_count)

        self._set_state(PipelineState.RENDERING)
        rasters = self._render_slides(slides, metadata, total)

        self._check_cancelled("assembling")
        self._set_state(PipelineState.ASSEMBLING)
        self._emit(
            "Generating PDF",
            slide_count + 1,
            total,
            max(ASSEMBLY_PERCENTAGE, self._percentage),
        )

        title = metadata.title or self.settings.default_title
        try:
            generator = PdfGenerator(metadata.canvas_width_px, metadata.canvas_height_px)
            pdf_bytes = generator.generate_pdf(rasters, title)
        except ConversionError as e:
            raise StageError("assembling", f"Failed to generate PDF: {e}") from e

        self._set_state(PipelineState.COMPLETE)
        self._emit("Complete", total, total, 100.0)
        logger.info(f"Converted {Path(file_path).name}: {slide_count} pages")
        return pdf_bytes

    def _read_slides(self, extractor: PptxExtractor, slide_count: int) -> List[SlideRecord]:
        slides = []
        for i in range(slide_count):
            self._check_cancelled("reading slides")
            try:
                slides.append(extractor.read_slide(i))
            except ConversionError as e:
                raise StageError(
                    "reading_slides",
                    f"Failed to extract slide {i + 1} of {slide_count}: {e}",
                ) from e
        return slides

    def _render_slides(
        self,
        slides: List[SlideRecord],
        metadata: PackageMetadata,
        total: int,
    ) -> List[RasterSlide]:
        """
        Render all slides, in parallel when more than one worker is set.

        Results are stored by slide index so completion order never
        affects page order.
        """
        renderer = SlideRenderer(
            metadata.canvas_width_px,
            metadata.canvas_height_px,
            skip_undecodable_media=self.settings.skip_undecodable_media,
        )
        slide_count = len(slides)
        results: List[Optional[RasterSlide]] = [None] * slide_count
        workers = min(self.settings.render_workers, slide_count)

        if workers <= 1:
            for done, slide in enumerate(slides, start=1):
                results[slide.index] = self._render_slide(renderer, slide, slide_count)
                self._on_slide_rendered(done, slide_count, total)
            return results

        logger.info(f"Rendering {slide_count} slides on {workers} workers")
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="slide-render") as executor:
            futures = {
                executor.submit(self._render_slide, renderer, slide, slide_count): slide.index
                for slide in slides
            }
            try:
                for done, future in enumerate(as_completed(futures), start=1):
                    results[futures[future]] = future.result()
                    self._on_slide_rendered(done, slide_count, total)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return results

    def _render_slide(
        self,
        renderer: SlideRenderer,
        slide: SlideRecord,
        slide_count: int,
    ) -> RasterSlide:
        self._check_cancelled(f"rendering slide {slide.index + 1}")
        try:
            elements = SlideParser().parse(slide.raw_markup)
            scene = Scene.from_slide(slide, elements)
            return renderer.render(scene, index=slide.index, stop_event=self.stop_event)
        except ConversionCancelled:
            raise
        except ConversionError as e:
            raise StageError(
                "rendering",
                f"slide {slide.index + 1} of {slide_count} failed to render: {e}",
            ) from e

    def _on_slide_rendered(self, done: int, slide_count: int, total: int) -> None:
        current = done + 1
        self._emit(
            f"Rendering slide {done}/{slide_count}",
            current,
            total,
            _percentage(current, total),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: PipelineState) -> None:
        if state != self.state:
            logger.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.state = state

    def _check_cancelled(self, stage: str) -> None:
        if self.stop_event.is_set():
            logger.info(f"Conversion cancelled during {stage}")
            raise ConversionCancelled(stage)

    def _emit(
        self,
        stage: str,
        current: int,
        total: int,
        percentage: float,
        force: bool = False,
    ) -> None:
        """
        Send a progress notification, best effort.

        Percentages never move backwards within one attempt; `force` is
        used by the retry marker, which starts a new attempt at zero.
        """
        if not force:
            percentage = max(percentage, self._percentage)
        self._percentage = percentage

        progress = ConversionProgress(
            stage=stage,
            current=current,
            total=total,
            percentage=percentage,
        )
        logger.debug(f"Progress: {stage} ({current}/{total}, {percentage:.1f}%)")

        if self.progress_callback is None:
            return
        try:
            self.progress_callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")


def get_metadata(file_path: PathLike) -> Dict[str, Any]:
    """Host-facing metadata: {slideCount, width, height, title}."""
    return ConversionPipeline().get_metadata(file_path).to_dict()


def convert(
    file_path: PathLike,
    progress_callback: Optional[ProgressCallback] = None,
    settings: Optional[ConverterSettings] = None,
) -> bytes:
    """Convert a package to PDF bytes."""
    return ConversionPipeline(settings, progress_callback).convert(file_path)


def convert_with_retry(
    file_path: PathLike,
    max_retries: int,
    progress_callback: Optional[ProgressCallback] = None,
    settings: Optional[ConverterSettings] = None,
) -> bytes:
    """Convert a package to PDF bytes, retrying the whole pipeline on failure."""
    return ConversionPipeline(settings, progress_callback).convert_with_retry(
        file_path, max_retries
    )
