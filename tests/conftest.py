"""
Pytest configuration and fixtures.

Packages are built on disk under tmp_path, either by hand with zipfile
(exact XML, easy to break) or with python-pptx (real PowerPoint layout).
"""

import io
import sys
from pathlib import Path
from typing import Callable

import pytest
from pptx import Presentation
from pptx.util import Emu, Inches

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings_manager import ConverterSettings  # noqa: E402
from package_builders import (  # noqa: E402
    core_xml,
    image_rels,
    picture,
    png_bytes,
    slide_xml,
    text_shape,
    write_package,
)


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a hand-built package; see package_builders.write_package."""

    def _make(slides, name: str = "deck.pptx", **kwargs) -> Path:
        return write_package(tmp_path / name, slides, **kwargs)

    return _make


@pytest.fixture
def simple_package(make_package) -> Path:
    """One slide with a titled text box and a blue picture behind rId1."""
    return make_package(
        [slide_xml(
            text_shape("Hello", x=914400, y=457200, cx=1828800, cy=914400),
            picture("rId1", x=0, y=0, cx=914400, cy=914400),
        )],
        rels={1: image_rels("rId1")},
        media={"ppt/media/image1.png": png_bytes()},
        core=core_xml("Deck Title"),
    )


@pytest.fixture
def three_slide_pptx(tmp_path: Path) -> Path:
    """A 16:9 python-pptx deck of three slides, the second with a picture."""
    prs = Presentation()
    prs.slide_width = Emu(9144000)
    prs.slide_height = Emu(5143500)
    prs.core_properties.title = "Quarterly Review"
    blank = prs.slide_layouts[6]

    for n in range(1, 4):
        slide = prs.slides.add_slide(blank)
        box = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1))
        box.text_frame.text = f"Slide {n}"
        if n == 2:
            slide.shapes.add_picture(
                io.BytesIO(png_bytes((255, 0, 0, 255), (20, 20))),
                Inches(5), Inches(1), Inches(2), Inches(2),
            )

    path = tmp_path / "review.pptx"
    prs.save(str(path))
    return path


@pytest.fixture
def fast_settings() -> ConverterSettings:
    """Settings without retry delay."""
    return ConverterSettings(retry_delay_seconds=0.0)


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    """Settings file location inside tmp_path."""
    return tmp_path / "settings.json"
