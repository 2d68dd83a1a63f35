"""
Tests for the conversion pipeline: end-to-end output, progress reporting,
retries, parallel rendering and cancellation.
"""

import threading
import time

import pymupdf
import pytest

from config.settings_manager import ConverterSettings
from core import pipeline as pipeline_module
from core.errors import (
    ConversionCancelled,
    ImageDecodeError,
    RetryExhaustedError,
    StageError,
)
from core.pipeline import ConversionPipeline, PipelineState
from package_builders import image_rels, mark_encrypted, picture, slide_xml, text_shape

FULL_SLIDE = {"x": 0, "y": 0, "cx": 9144000, "cy": 5143500}


class ProgressRecorder:
    """Collects ConversionProgress notifications."""

    def __init__(self):
        self.events = []

    def __call__(self, progress):
        self.events.append(progress)

    @property
    def stages(self):
        return [e.stage for e in self.events]


class FlakyPipeline(ConversionPipeline):
    """Fails the first `failures` attempts."""

    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.calls = 0

    def convert(self, file_path):
        self.calls += 1
        if self.calls <= self.failures:
            raise StageError("extracting", "transient failure")
        return super().convert(file_path)


def _open(pdf_bytes):
    return pymupdf.open(stream=pdf_bytes, filetype="pdf")


@pytest.fixture
def colored_package(make_package):
    """Three full-slide fills: red, green, blue."""
    return make_package([
        slide_xml(text_shape("", fill=color, **FULL_SLIDE))
        for color in ("FF0000", "00FF00", "0000FF")
    ])


@pytest.fixture
def bad_image_package(make_package):
    """Second of three slides references an undecodable image."""
    return make_package(
        [
            slide_xml(text_shape("one")),
            slide_xml(picture("rId1")),
            slide_xml(text_shape("three")),
        ],
        rels={2: image_rels("rId1")},
        media={"ppt/media/image1.png": b"definitely not a png"},
    )


class TestMetadata:
    """Host-facing metadata."""

    def test_get_metadata(self, three_slide_pptx):
        assert pipeline_module.get_metadata(three_slide_pptx) == {
            "slideCount": 3,
            "width": pytest.approx(960.0),
            "height": pytest.approx(540.0),
            "title": "Quarterly Review",
        }


class TestConvert:
    """End-to-end conversion."""

    def test_three_slides_three_pages(self, three_slide_pptx):
        pdf_bytes = pipeline_module.convert(three_slide_pptx)
        assert pdf_bytes[:4] == b"%PDF"
        with _open(pdf_bytes) as doc:
            assert doc.page_count == 3
            for page in doc:
                assert page.rect.width == pytest.approx(720.0, abs=0.01)
                assert page.rect.height == pytest.approx(405.0, abs=0.01)
            assert doc.metadata["title"] == "Quarterly Review"

    def test_untitled_package_uses_default_title(self, make_package):
        path = make_package([slide_xml(text_shape("x"))])
        with _open(pipeline_module.convert(path)) as doc:
            assert doc.metadata["title"] == "Presentation"

    def test_state_complete(self, simple_package):
        pipeline = ConversionPipeline()
        pipeline.convert(simple_package)
        assert pipeline.state == PipelineState.COMPLETE

    def test_page_order_matches_slides(self, colored_package):
        with _open(pipeline_module.convert(colored_package)) as doc:
            centers = []
            for page in doc:
                pixmap = page.get_pixmap()
                centers.append(pixmap.pixel(pixmap.width // 2, pixmap.height // 2)[:3])
        assert [max(range(3), key=lambda c: rgb[c]) for rgb in centers] == [0, 1, 2]

    def test_render_failure_names_slide(self, bad_image_package):
        pipeline = ConversionPipeline()
        with pytest.raises(StageError) as exc_info:
            pipeline.convert(bad_image_package)
        assert "slide 2 of 3 failed to render" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ImageDecodeError)
        assert pipeline.state == PipelineState.FAILED

    def test_skip_policy_converts_bad_image_package(self, bad_image_package):
        settings = ConverterSettings(skip_undecodable_media=True)
        with _open(pipeline_module.convert(bad_image_package, settings=settings)) as doc:
            assert doc.page_count == 3

    def test_unreadable_slide_names_slide(self, make_package):
        path = make_package([slide_xml(text_shape("one")), slide_xml(text_shape("two"))])
        mark_encrypted(path, "ppt/slides/slide2.xml")
        with pytest.raises(StageError) as exc_info:
            pipeline_module.convert(path)
        assert "Failed to extract slide 2 of 2" in str(exc_info.value)

    def test_missing_file_is_extraction_failure(self, tmp_path):
        with pytest.raises(StageError) as exc_info:
            pipeline_module.convert(tmp_path / "missing.pptx")
        assert str(exc_info.value).startswith("Extraction failed: File not found")


class TestProgress:
    """Progress sequence and callback isolation."""

    def test_sequence(self, three_slide_pptx):
        recorder = ProgressRecorder()
        pipeline_module.convert(three_slide_pptx, progress_callback=recorder)

        events = recorder.events
        assert events[0].stage == "Extracting PPTX"
        assert (events[0].current, events[0].percentage) == (0, 0.0)
        assert "Generating PDF" in recorder.stages
        assert [s for s in recorder.stages if s.startswith("Rendering")] == [
            "Rendering slide 1/3",
            "Rendering slide 2/3",
            "Rendering slide 3/3",
        ]
        assert events[-1].stage == "Complete"
        assert events[-1].percentage == 100.0
        assert events[-1].current == events[-1].total == 5

    def test_current_and_percentage_never_decrease(self, three_slide_pptx):
        recorder = ProgressRecorder()
        pipeline_module.convert(three_slide_pptx, progress_callback=recorder)

        nonzero = [e.current for e in recorder.events if e.current > 0]
        assert nonzero == sorted(nonzero)
        assert list(dict.fromkeys(nonzero)) == [1, 2, 3, 4, 5]

        percentages = [e.percentage for e in recorder.events]
        assert percentages == sorted(percentages)

    def test_assembly_at_least_95_percent(self, three_slide_pptx):
        recorder = ProgressRecorder()
        pipeline_module.convert(three_slide_pptx, progress_callback=recorder)
        generating = next(e for e in recorder.events if e.stage == "Generating PDF")
        assert generating.percentage >= 95.0

    def test_failing_callback_does_not_abort(self, simple_package):
        def callback(progress):
            raise RuntimeError("observer failure")

        pdf_bytes = pipeline_module.convert(simple_package, progress_callback=callback)
        assert pdf_bytes[:4] == b"%PDF"

    def test_to_dict(self, simple_package):
        recorder = ProgressRecorder()
        pipeline_module.convert(simple_package, progress_callback=recorder)
        assert recorder.events[-1].to_dict() == {
            "stage": "Complete",
            "current": 3,
            "total": 3,
            "percentage": 100.0,
        }


class TestRetry:
    """Whole-pipeline retries."""

    def test_exhausted_after_three_attempts(self, tmp_path, fast_settings):
        recorder = ProgressRecorder()
        with pytest.raises(RetryExhaustedError) as exc_info:
            pipeline_module.convert_with_retry(
                tmp_path / "missing.pptx", 2, recorder, settings=fast_settings
            )

        message = str(exc_info.value)
        assert "3 attempts" in message
        assert "File not found" in message
        assert exc_info.value.attempts == 3

        markers = [e for e in recorder.events if e.stage.startswith("Retry attempt")]
        assert [m.stage for m in markers] == ["Retry attempt 1/2", "Retry attempt 2/2"]
        assert all((m.current, m.total, m.percentage) == (0, 100, 0.0) for m in markers)
        assert recorder.stages.count("Extracting PPTX") == 3

    def test_zero_retries_is_one_attempt(self, tmp_path, fast_settings):
        recorder = ProgressRecorder()
        with pytest.raises(RetryExhaustedError) as exc_info:
            pipeline_module.convert_with_retry(
                tmp_path / "missing.pptx", 0, recorder, settings=fast_settings
            )
        assert exc_info.value.attempts == 1
        assert recorder.stages.count("Extracting PPTX") == 1
        assert not any(s.startswith("Retry attempt") for s in recorder.stages)

    def test_recovers_after_transient_failure(self, simple_package, fast_settings):
        recorder = ProgressRecorder()
        pipeline = FlakyPipeline(1, settings=fast_settings, progress_callback=recorder)
        pdf_bytes = pipeline.convert_with_retry(simple_package, 2)

        assert pdf_bytes[:4] == b"%PDF"
        assert pipeline.calls == 2
        assert recorder.stages[0] == "Retry attempt 1/2"
        assert recorder.events[-1].percentage == 100.0

    def test_settings_supply_default_retries(self, tmp_path):
        settings = ConverterSettings(max_retries=1, retry_delay_seconds=0.0)
        with pytest.raises(RetryExhaustedError) as exc_info:
            ConversionPipeline(settings).convert_with_retry(tmp_path / "missing.pptx")
        assert exc_info.value.attempts == 2

    def test_negative_retries_rejected(self, simple_package):
        with pytest.raises(ValueError):
            ConversionPipeline().convert_with_retry(simple_package, -1)


class TestParallelRendering:
    """Thread-pool rendering keeps page order."""

    def test_workers_preserve_order(self, colored_package):
        settings = ConverterSettings(render_workers=3)
        recorder = ProgressRecorder()
        pdf_bytes = pipeline_module.convert(colored_package, recorder, settings)

        with _open(pdf_bytes) as doc:
            centers = []
            for page in doc:
                pixmap = page.get_pixmap()
                centers.append(pixmap.pixel(pixmap.width // 2, pixmap.height // 2)[:3])
        assert [max(range(3), key=lambda c: rgb[c]) for rgb in centers] == [0, 1, 2]

        rendering = [e.current for e in recorder.events if e.stage.startswith("Rendering")]
        assert rendering == [2, 3, 4]

    def test_worker_failure_propagates(self, bad_image_package):
        settings = ConverterSettings(render_workers=3)
        with pytest.raises(StageError) as exc_info:
            pipeline_module.convert(bad_image_package, settings=settings)
        assert "slide 2 of 3" in str(exc_info.value)


class TestCancellation:
    """Stop event handling."""

    def test_cancelled_before_start(self, simple_package):
        stop_event = threading.Event()
        stop_event.set()
        pipeline = ConversionPipeline(stop_event=stop_event)
        with pytest.raises(ConversionCancelled):
            pipeline.convert(simple_package)

    def test_cancellation_is_not_retried(self, simple_package, fast_settings):
        stop_event = threading.Event()
        stop_event.set()
        recorder = ProgressRecorder()
        pipeline = ConversionPipeline(fast_settings, recorder, stop_event)
        with pytest.raises(ConversionCancelled):
            pipeline.convert_with_retry(simple_package, 3)
        assert recorder.stages.count("Extracting PPTX") == 1

    def test_retry_wait_is_interruptible(self, tmp_path):
        stop_event = threading.Event()
        settings = ConverterSettings(retry_delay_seconds=30.0)
        pipeline = ConversionPipeline(settings, stop_event=stop_event)

        timer = threading.Timer(0.2, stop_event.set)
        timer.start()
        started = time.monotonic()
        try:
            with pytest.raises(ConversionCancelled):
                pipeline.convert_with_retry(tmp_path / "missing.pptx", 2)
        finally:
            timer.cancel()
        assert time.monotonic() - started < 10
