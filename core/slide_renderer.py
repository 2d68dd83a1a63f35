"""
Slide rasterization module.

Paints a parsed scene onto a fixed-size RGBA canvas in three layers,
back to front: solid shapes, embedded images, text placeholders.
"""
from __future__ import annotations

import io
import logging
import math
import threading
from typing import Optional, Tuple

from PIL import Image, ImageDraw, UnidentifiedImageError

from config.defaults import CANVAS_BACKGROUND, TEXT_PLACEHOLDER_COLOR
from .errors import ConversionCancelled, ImageDecodeError
from .geometry import canvas_pixels
from .models import MediaAsset, MediaRegion, RasterSlide, Scene, ShapeRegion, TextRegion

logger = logging.getLogger(__name__)

RESAMPLING_FILTER = Image.Resampling.LANCZOS


def _pixel_box(region) -> Optional[Tuple[int, int, int, int]]:
    """Integer (left, top, width, height) of a region, or None if it has no area."""
    width = int(region.w)
    height = int(region.h)
    if width <= 0 or height <= 0:
        return None
    return (math.floor(region.x), math.floor(region.y), width, height)


class SlideRenderer:
    """
    Renders scenes to rasters of one canvas size.

    The renderer holds no per-slide state, so one instance can serve
    several worker threads.
    """

    def __init__(
        self,
        width: float,
        height: float,
        skip_undecodable_media: bool = False,
    ):
        """
        Initialize the renderer.

        Args:
            width: Canvas width in pixels (rounded to whole pixels).
            height: Canvas height in pixels (rounded to whole pixels).
            skip_undecodable_media: Drop images that fail to decode
                instead of failing the slide.
        """
        self.width, self.height = canvas_pixels(width, height)
        self.skip_undecodable_media = skip_undecodable_media

    def render(
        self,
        scene: Scene,
        index: int = 0,
        stop_event: Optional[threading.Event] = None,
    ) -> RasterSlide:
        """
        Render a scene to a raster.

        Args:
            scene: Parsed elements and the slide's media.
            index: Slide index carried onto the raster.
            stop_event: Optional event to signal cancellation.

        Returns:
            RasterSlide of the renderer's canvas size.

        Raises:
            ImageDecodeError: If an image cannot be decoded and the skip
                policy is off.
            ConversionCancelled: If stop_event is set between layers.
        """
        canvas = Image.new("RGBA", (self.width, self.height), CANVAS_BACKGROUND)
        draw = ImageDraw.Draw(canvas)

        for shape in scene.of_type(ShapeRegion):
            self._render_shape(draw, shape)

        self._check_cancelled(stop_event, index)

        for region in scene.of_type(MediaRegion):
            asset = scene.media.get(region.asset_id)
            if asset is None:
                logger.debug(f"Slide {index + 1}: no media for {region.asset_id}, frame left empty")
                continue
            self._render_image(canvas, region, asset)

        self._check_cancelled(stop_event, index)

        for text in scene.of_type(TextRegion):
            self._render_text(draw, text)

        return RasterSlide(index=index, image=canvas)

    @staticmethod
    def _check_cancelled(stop_event: Optional[threading.Event], index: int) -> None:
        if stop_event and stop_event.is_set():
            raise ConversionCancelled(f"rendering slide {index + 1}")

    def _render_shape(self, draw: ImageDraw.ImageDraw, shape: ShapeRegion) -> None:
        box = _pixel_box(shape)
        if box is None:
            return
        left, top, width, height = box
        draw.rectangle(
            [left, top, left + width - 1, top + height - 1],
            fill=tuple(shape.fill_color),
        )

    def _render_image(self, canvas: Image.Image, region: MediaRegion, asset: MediaAsset) -> None:
        box = _pixel_box(region)
        if box is None:
            return
        left, top, width, height = box

        try:
            source = decode_image(asset)
        except ImageDecodeError as e:
            if not self.skip_undecodable_media:
                raise
            logger.warning(f"{e} - skipping")
            return

        # Region box is authoritative: aspect ratio is not preserved
        resized = source.resize((width, height), RESAMPLING_FILTER)

        src_left = max(0, -left)
        src_top = max(0, -top)
        dst_left = max(0, left)
        dst_top = max(0, top)
        right = min(canvas.width, left + width)
        bottom = min(canvas.height, top + height)
        if right <= dst_left or bottom <= dst_top:
            return

        patch = resized.crop((
            src_left,
            src_top,
            src_left + (right - dst_left),
            src_top + (bottom - dst_top),
        ))
        canvas.alpha_composite(patch, dest=(dst_left, dst_top))

    def _render_text(self, draw: ImageDraw.ImageDraw, text: TextRegion) -> None:
        # Outline only; glyph rendering is not implemented
        box = _pixel_box(text)
        if box is None:
            return
        left, top, width, height = box
        draw.rectangle(
            [left, top, left + width, top + height],
            outline=TEXT_PLACEHOLDER_COLOR,
            width=1,
        )


def decode_image(asset: MediaAsset) -> Image.Image:
    """
    Decode media bytes into an RGBA image.

    Raises:
        ImageDecodeError: If Pillow cannot read the bytes.
    """
    try:
        with Image.open(io.BytesIO(asset.data)) as source:
            source.load()
            return source.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(asset.relationship_id, str(e)) from e


def render_scene(scene: Scene, canvas_width: float, canvas_height: float) -> RasterSlide:
    """Render a scene with the default (abort on bad image) policy."""
    return SlideRenderer(canvas_width, canvas_height).render(scene)
