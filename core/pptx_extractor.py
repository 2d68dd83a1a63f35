"""
PPTX container reading module.

Opens the zip package, extracts structural metadata and reads slide
markup together with the embedded images each slide references.
"""
from __future__ import annotations

import logging
import posixpath
import re
import zipfile
import zlib
from pathlib import Path
from typing import List, Optional, Tuple, Union

from lxml import etree
from pptx.oxml.ns import qn

from config.defaults import (
    DEFAULT_SLIDE_HEIGHT_EMU,
    DEFAULT_SLIDE_WIDTH_EMU,
    SUPPORTED_EXTENSIONS,
)
from .errors import (
    CorruptArchiveError,
    InvalidExtensionError,
    NoSlidesFoundError,
    PackageNotFoundError,
    SlideNotFoundError,
    XmlParseError,
)
from .geometry import emu_to_px
from .models import MediaAsset, PackageMetadata, SlideRecord
from .slide_parser import collect_image_references

logger = logging.getLogger(__name__)

SLIDES_DIR = "ppt/slides"
PRESENTATION_PART = "ppt/presentation.xml"
CORE_PROPERTIES_PART = "docProps/core.xml"
SLIDE_PART_PATTERN = re.compile(r"^ppt/slides/slide(\d+)\.xml$")

IMAGE_RELATIONSHIP_SUFFIX = "/image"

P_SLDSZ = qn("p:sldSz")
DC_TITLE = qn("dc:title")
PR_RELATIONSHIP = qn("pr:Relationship")


def parse_part_xml(data: bytes) -> etree._Element:
    """Parse one package part without expanding entities or touching the network."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    return etree.fromstring(data, parser)


def slide_part_name(index: int) -> str:
    """Part name of the slide at 0-based `index` (slide files are 1-based)."""
    return f"{SLIDES_DIR}/slide{index + 1}.xml"


def slide_rels_part_name(index: int) -> str:
    """Relationship part that accompanies the slide at `index`."""
    return f"{SLIDES_DIR}/_rels/slide{index + 1}.xml.rels"


def resolve_target(base_dir: str, target: str) -> Optional[str]:
    """
    Resolve a relationship target to a part name.

    Args:
        base_dir: Directory of the source part (e.g. "ppt/slides").
        target: Target attribute from the relationship.

    Returns:
        Normalized part name, or None if it escapes the package root.

    Example:
        >>> resolve_target("ppt/slides", "../media/image1.png")
        'ppt/media/image1.png'
    """
    if target.startswith("/"):
        resolved = posixpath.normpath(target.lstrip("/"))
    else:
        resolved = posixpath.normpath(posixpath.join(base_dir, target))
    if resolved.startswith("..") or resolved in (".", ""):
        return None
    return resolved


class PptxExtractor:
    """
    Single-owner handle on a presentation package.

    The underlying zip file is read sequentially and must not be shared
    between concurrent jobs; open one extractor per conversion.
    """

    def __init__(self, file_path: Union[str, Path]):
        """
        Open a presentation package.

        Args:
            file_path: Path to the .pptx file.

        Raises:
            PackageNotFoundError: If the path does not exist.
            InvalidExtensionError: If the extension is not a presentation one.
            CorruptArchiveError: If the file is not a readable zip archive.
        """
        self.path = Path(file_path)

        if not self.path.exists():
            raise PackageNotFoundError(str(file_path))

        if self.path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise InvalidExtensionError(str(file_path))

        try:
            self._archive = zipfile.ZipFile(self.path, "r")
        except (zipfile.BadZipFile, OSError) as e:
            raise CorruptArchiveError(
                f"Corrupted PPTX file: Unable to read ZIP structure. {e}"
            ) from e

        self._names = set(self._archive.namelist())
        logger.info(f"Opened package: {self.path.name} ({len(self._names)} parts)")

    def __enter__(self) -> PptxExtractor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the archive handle."""
        self._archive.close()

    def has_part(self, name: str) -> bool:
        return name in self._names

    def read_part(self, name: str) -> bytes:
        """
        Read one part's bytes.

        Raises:
            KeyError: If the part is absent.
            CorruptArchiveError: If the entry cannot be decompressed, is
                encrypted or uses an unsupported compression method.
        """
        try:
            return self._archive.read(name)
        except (zipfile.BadZipFile, zlib.error, OSError, RuntimeError, NotImplementedError) as e:
            raise CorruptArchiveError(f"Failed to read part {name}: {e}") from e

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def extract_metadata(self) -> PackageMetadata:
        """
        Extract slide count, canvas size and title.

        Raises:
            NoSlidesFoundError: If the package holds no slide parts.
        """
        slide_count = self.count_slides()
        width_px, height_px = self._extract_slide_dimensions()
        title = self._extract_title()

        metadata = PackageMetadata(
            slide_count=slide_count,
            canvas_width_px=width_px,
            canvas_height_px=height_px,
            title=title,
        )
        logger.info(
            f"Metadata: {slide_count} slides, {width_px:.1f}x{height_px:.1f}px, "
            f"title={title!r}"
        )
        return metadata

    def count_slides(self) -> int:
        count = sum(1 for name in self._names if SLIDE_PART_PATTERN.match(name))
        if count == 0:
            raise NoSlidesFoundError()
        return count

    def _extract_slide_dimensions(self) -> Tuple[float, float]:
        """
        Read the declared slide size from presentation.xml.

        Falls back to the 16:9 default for a missing descriptor, a missing
        size element or unparsable attributes.
        """
        width = float(DEFAULT_SLIDE_WIDTH_EMU)
        height = float(DEFAULT_SLIDE_HEIGHT_EMU)

        try:
            root = parse_part_xml(self.read_part(PRESENTATION_PART))
        except KeyError:
            logger.warning("presentation.xml not found - using default 16:9 size")
            return emu_to_px(width), emu_to_px(height)
        except (etree.XMLSyntaxError, CorruptArchiveError) as e:
            logger.warning(f"presentation.xml unreadable ({e}) - using default 16:9 size")
            return emu_to_px(width), emu_to_px(height)

        size = root.find(f".//{P_SLDSZ}")
        if size is None:
            logger.warning("No slide size declared - using default 16:9 size")
        else:
            width = self._emu_or_default(size.get("cx"), width)
            height = self._emu_or_default(size.get("cy"), height)

        return emu_to_px(width), emu_to_px(height)

    @staticmethod
    def _emu_or_default(value: Optional[str], default: float) -> float:
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            return default
        return parsed if parsed > 0 else default

    def _extract_title(self) -> Optional[str]:
        """Title from core properties; absent, unparsable or empty means None."""
        try:
            root = parse_part_xml(self.read_part(CORE_PROPERTIES_PART))
        except (KeyError, etree.XMLSyntaxError, CorruptArchiveError):
            return None

        element = root.find(f".//{DC_TITLE}")
        if element is None or not element.text or not element.text.strip():
            return None
        return element.text.strip()

    # ------------------------------------------------------------------
    # Slides
    # ------------------------------------------------------------------

    def read_slide(self, index: int) -> SlideRecord:
        """
        Read one slide's markup and its referenced images.

        Args:
            index: 0-based slide index.

        Returns:
            SlideRecord with resolved media.

        Raises:
            SlideNotFoundError: If the slide part is absent.
            XmlParseError: If the slide or relationship markup is malformed.
        """
        name = slide_part_name(index)
        if index < 0 or not self.has_part(name):
            raise SlideNotFoundError(index)

        try:
            raw_markup = self.read_part(name).decode("utf-8")
        except UnicodeDecodeError as e:
            raise XmlParseError(f"Slide {index + 1} is not valid UTF-8: {e}") from e

        image_ids = collect_image_references(raw_markup)
        media = self._load_slide_images(index, image_ids) if image_ids else []

        logger.debug(
            f"Read slide {index + 1}: {len(image_ids)} image references, "
            f"{len(media)} resolved"
        )
        return SlideRecord(index=index, raw_markup=raw_markup, embedded_media=media)

    def read_all_slides(self) -> List[SlideRecord]:
        """Read every slide in index order."""
        return [self.read_slide(i) for i in range(self.count_slides())]

    def _load_slide_images(self, index: int, image_ids: List[str]) -> List[MediaAsset]:
        rels_name = slide_rels_part_name(index)
        try:
            rels_xml = self.read_part(rels_name)
        except KeyError:
            # No relationships part means no media
            return []

        media: List[MediaAsset] = []
        for rel_id, part_name in self._image_relationships(rels_xml, image_ids):
            try:
                data = self.read_part(part_name)
            except (KeyError, CorruptArchiveError) as e:
                logger.warning(f"Slide {index + 1}: media {rel_id} -> {part_name} unreadable ({e})")
                continue

            extension = posixpath.splitext(part_name)[1].lstrip(".").lower() or "png"
            media.append(MediaAsset(relationship_id=rel_id, data=data, declared_format=extension))

        return media

    def _image_relationships(
        self,
        rels_xml: bytes,
        image_ids: List[str],
    ) -> List[Tuple[str, str]]:
        """Map referenced image relationship ids to part names."""
        try:
            root = parse_part_xml(rels_xml)
        except etree.XMLSyntaxError as e:
            raise XmlParseError(f"XML parsing error in relationships: {e}") from e

        mappings: List[Tuple[str, str]] = []
        for rel in root.iter(PR_RELATIONSHIP):
            rel_id = rel.get("Id")
            rel_type = rel.get("Type") or ""
            target = rel.get("Target")

            if not rel_id or not target or rel_id not in image_ids:
                continue
            if not rel_type.endswith(IMAGE_RELATIONSHIP_SUFFIX):
                continue
            if rel.get("TargetMode") == "External":
                logger.debug(f"Skipping external image {rel_id}: {target}")
                continue

            part_name = resolve_target(SLIDES_DIR, target)
            if part_name is None:
                logger.warning(f"Image {rel_id} target escapes the package: {target}")
                continue
            mappings.append((rel_id, part_name))

        return mappings
