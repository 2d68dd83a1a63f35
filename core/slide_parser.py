"""
Slide markup parsing module.

Turns one slide's XML into an ordered list of scene elements in a single
forward pass over lxml parser events. Positions are converted from EMU
to canvas pixels as elements are emitted.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from lxml import etree
from pptx.oxml.ns import qn

from config.defaults import DEFAULT_SHAPE_FILL
from .errors import XmlParseError
from .geometry import emu_to_px
from .models import Color, MediaRegion, SceneElement, ShapeRegion, TextRegion

logger = logging.getLogger(__name__)

P_SP = qn("p:sp")
P_PIC = qn("p:pic")
P_SPPR = qn("p:spPr")
P_XFRM = qn("p:xfrm")
A_XFRM = qn("a:xfrm")
A_OFF = qn("a:off")
A_EXT = qn("a:ext")
A_BLIP = qn("a:blip")
A_SOLID_FILL = qn("a:solidFill")
A_SRGB_CLR = qn("a:srgbClr")
A_P = qn("a:p")
A_T = qn("a:t")
R_EMBED = qn("r:embed")

_TRANSFORM_TAGS = (A_XFRM, P_XFRM)
_ELEMENT_TAGS = (P_SP, P_PIC)


@dataclass
class Transform:
    """Position and size of the current element in EMU."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_px(self) -> Tuple[float, float, float, float]:
        return (
            emu_to_px(self.x),
            emu_to_px(self.y),
            emu_to_px(self.width),
            emu_to_px(self.height),
        )


@dataclass
class _ElementState:
    """Everything collected between the open and close of one shape/picture."""
    tag: Optional[str] = None
    transform: Transform = field(default_factory=Transform)
    media_refs: List[str] = field(default_factory=list)
    fill: Optional[Color] = None
    paragraphs: List[str] = field(default_factory=list)
    runs: List[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.tag is not None

    def end_paragraph(self) -> None:
        text = "".join(self.runs)
        if text:
            self.paragraphs.append(text)
        self.runs = []

    def finish_text(self) -> str:
        self.end_paragraph()
        return "\n".join(self.paragraphs)


def _events(raw_markup: str) -> Iterator[Tuple[str, etree._Element]]:
    data = raw_markup.encode("utf-8") if isinstance(raw_markup, str) else raw_markup
    try:
        yield from etree.iterparse(
            io.BytesIO(data),
            events=("start", "end"),
            remove_comments=True,
            resolve_entities=False,
            no_network=True,
        )
    except etree.XMLSyntaxError as e:
        raise XmlParseError(f"XML parsing error: {e}") from e


def _number_attr(element: etree._Element, name: str) -> float:
    """Parse a numeric attribute, falling back to 0 when absent or malformed."""
    try:
        return float(element.get(name))
    except (TypeError, ValueError):
        return 0.0


def _parse_srgb(value: Optional[str]) -> Color:
    try:
        if value is None or len(value) != 6:
            raise ValueError(value)
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16), 255)
    except ValueError:
        return DEFAULT_SHAPE_FILL


def _parent_tag(element: etree._Element) -> Optional[str]:
    parent = element.getparent()
    return parent.tag if parent is not None else None


def collect_image_references(raw_markup: str) -> List[str]:
    """
    Return the relationship ids of embedded images, in document order.

    Raises:
        XmlParseError: If the markup is not well-formed.
    """
    ids: List[str] = []
    for event, element in _events(raw_markup):
        if event == "start" and element.tag == A_BLIP:
            rel_id = element.get(R_EMBED)
            if rel_id and rel_id not in ids:
                ids.append(rel_id)
    return ids


class SlideParser:
    """
    Streaming state machine over slide markup.

    The current transform resets whenever a shape or picture opens and is
    filled in by the offset and extent of its transform element. Elements
    are emitted when the shape or picture closes:
    fill rectangle, then image references, then the text box.
    """

    def parse(self, raw_markup: str) -> List[SceneElement]:
        """
        Parse slide markup into scene elements.

        Args:
            raw_markup: Slide XML text.

        Returns:
            Ordered list of ShapeRegion, MediaRegion and TextRegion.

        Raises:
            XmlParseError: If the markup is not well-formed.
        """
        elements: List[SceneElement] = []
        state = _ElementState()

        for event, element in _events(raw_markup):
            tag = element.tag
            if event == "start":
                if tag in _ELEMENT_TAGS:
                    state = _ElementState(tag=tag)
                elif tag == A_OFF and _parent_tag(element) in _TRANSFORM_TAGS:
                    state.transform.x = _number_attr(element, "x")
                    state.transform.y = _number_attr(element, "y")
                elif tag == A_EXT and _parent_tag(element) in _TRANSFORM_TAGS:
                    state.transform.width = _number_attr(element, "cx")
                    state.transform.height = _number_attr(element, "cy")
                elif tag == A_BLIP:
                    self._on_blip(element, state, elements)
                elif tag == A_SRGB_CLR and state.tag == P_SP:
                    fill = element.getparent()
                    if fill.tag == A_SOLID_FILL and _parent_tag(fill) == P_SPPR:
                        state.fill = _parse_srgb(element.get("val"))
            else:
                if tag == A_T and state.is_open:
                    state.runs.append(element.text or "")
                elif tag == A_P and state.is_open:
                    state.end_paragraph()
                elif tag in _ELEMENT_TAGS and state.tag == tag:
                    elements.extend(self._close(state))
                    state = _ElementState(transform=state.transform)
                    element.clear()

        logger.debug(f"Parsed {len(elements)} scene elements")
        return elements

    def _on_blip(
        self,
        element: etree._Element,
        state: _ElementState,
        elements: List[SceneElement],
    ) -> None:
        rel_id = element.get(R_EMBED)
        if not rel_id:
            return
        if state.is_open:
            state.media_refs.append(rel_id)
        else:
            x, y, w, h = state.transform.to_px()
            elements.append(MediaRegion(asset_id=rel_id, x=x, y=y, w=w, h=h))

    def _close(self, state: _ElementState) -> List[SceneElement]:
        x, y, w, h = state.transform.to_px()
        emitted: List[SceneElement] = []

        if state.fill is not None:
            emitted.append(ShapeRegion(x=x, y=y, w=w, h=h, fill_color=state.fill))

        for rel_id in state.media_refs:
            emitted.append(MediaRegion(asset_id=rel_id, x=x, y=y, w=w, h=h))

        text = state.finish_text()
        if text:
            emitted.append(TextRegion(text=text, x=x, y=y, w=w, h=h))

        return emitted


def parse_slide(raw_markup: str) -> List[SceneElement]:
    """Parse slide markup with a fresh parser."""
    return SlideParser().parse(raw_markup)
