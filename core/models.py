"""
Data models shared by the conversion stages.

Package-level records come out of the extractor, scene elements out of
the slide parser, and rasters out of the renderer. Scene positions and
sizes are always in canvas pixels.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from PIL import Image

from config.defaults import DEFAULT_FONT_SIZE, DEFAULT_TEXT_COLOR

Color = Tuple[int, int, int, int]


@dataclass(frozen=True)
class PackageMetadata:
    """Structural metadata of one presentation package."""

    slide_count: int
    canvas_width_px: float
    canvas_height_px: float
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Host-facing dictionary."""
        return {
            "slideCount": self.slide_count,
            "width": self.canvas_width_px,
            "height": self.canvas_height_px,
            "title": self.title,
        }


@dataclass(frozen=True)
class MediaAsset:
    """Embedded media resolved from a slide relationship."""

    relationship_id: str
    data: bytes = field(repr=False)
    declared_format: str = "png"


@dataclass
class SlideRecord:
    """Raw markup and resolved media of one slide."""

    index: int
    raw_markup: str
    embedded_media: List[MediaAsset] = field(default_factory=list)

    def media_by_id(self) -> Dict[str, MediaAsset]:
        return {asset.relationship_id: asset for asset in self.embedded_media}


@dataclass(frozen=True)
class TextRegion:
    """Text placeholder box."""

    text: str
    x: float
    y: float
    w: float
    h: float
    font_size: float = DEFAULT_FONT_SIZE
    color: Color = DEFAULT_TEXT_COLOR
    bold: bool = False


@dataclass(frozen=True)
class MediaRegion:
    """Picture frame referencing a media asset by relationship id."""

    asset_id: str
    x: float
    y: float
    w: float
    h: float


@dataclass(frozen=True)
class ShapeRegion:
    """Solid-filled rectangle."""

    x: float
    y: float
    w: float
    h: float
    fill_color: Color


SceneElement = Union[TextRegion, MediaRegion, ShapeRegion]


@dataclass
class Scene:
    """Parsed elements of one slide plus the media they may reference."""

    elements: List[SceneElement] = field(default_factory=list)
    media: Dict[str, MediaAsset] = field(default_factory=dict)

    @classmethod
    def from_slide(cls, slide: SlideRecord, elements: List[SceneElement]) -> Scene:
        return cls(elements=list(elements), media=slide.media_by_id())

    def of_type(self, kind: type) -> List[SceneElement]:
        return [e for e in self.elements if isinstance(e, kind)]


@dataclass
class RasterSlide:
    """A fully rendered slide."""

    index: int
    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


@dataclass(frozen=True)
class ConversionProgress:
    """One progress notification."""

    stage: str
    current: int
    total: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
        }
