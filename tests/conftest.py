from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest
from fontTools.ttLib import TTFont
from PIL import Image

from msdf_tools.engine import AtlasOptions, Bin, MsdfOptions, PlacedGlyph, PlacedRect
from msdf_tools.glyph_set import assemble_glyph_set, compile_font
from msdf_tools.svg_outline import build_svg_outline


SQUARE_SVG = """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24">
  <path d="M4 4 H20 V20 H4 Z"/>
</svg>
"""

CELL_W = 10
CELL_H = 12
COLUMNS = 16


class FakeEngine:
    """
    Stands in for the atlas generator: reads the font back with fontTools and
    places every requested glyph in a fixed grid on a single page.
    """

    def __init__(self, engine_path: Optional[str] = None):
        self.engine_path = engine_path
        self.metrics: Dict[str, float] = {"emSize": 1, "lineHeight": 1.2, "ascenderY": 0.8, "descenderY": -0.2}
        self.charset: List[int] = []
        self.advances: Dict[int, float] = {}
        self.font: Optional[TTFont] = None

    def load_font(self, font_data: bytes, charset: Sequence[int]) -> None:
        font = TTFont(io.BytesIO(font_data))
        upm = font["head"].unitsPerEm
        cmap = font.getBestCmap() or {}
        hmtx = font["hmtx"]
        self.font = font
        self.charset = list(charset)
        self.advances = {
            cp: hmtx[cmap.get(cp, ".notdef")][0] / upm for cp in self.charset
        }

    def pack_glyphs(self, msdf_options: MsdfOptions, atlas_options: AtlasOptions) -> List[Bin]:
        em_range = msdf_options.range / msdf_options.size
        rects = []
        for i, cp in enumerate(self.charset):
            glyph = PlacedGlyph(unicode=cp, advance=self.advances[cp], left=0.05, top=0.75)
            if cp == 0x20:
                rects.append(PlacedRect(glyph=glyph, x=0, y=0, width=0, height=0, range=em_range))
                continue
            rects.append(
                PlacedRect(
                    glyph=glyph,
                    x=(i % COLUMNS) * CELL_W,
                    y=(i // COLUMNS) * CELL_H,
                    width=CELL_W,
                    height=CELL_H,
                    range=em_range,
                )
            )
        rows = max(1, -(-len(self.charset) // COLUMNS))
        return [Bin(width=COLUMNS * CELL_W, height=rows * CELL_H, rects=rects)]

    def create_atlas_image(self, bin: Bin) -> bytes:
        buf = io.BytesIO()
        Image.new("RGB", (bin.width, bin.height)).save(buf, format="PNG")
        return buf.getvalue()


@pytest.fixture
def engines() -> List[FakeEngine]:
    return []


@pytest.fixture
def engine_factory(engines):
    def factory(engine_path: Optional[str] = None) -> FakeEngine:
        engine = FakeEngine(engine_path)
        engines.append(engine)
        return engine

    return factory


@pytest.fixture
def fake_engine_cls():
    return FakeEngine


@pytest.fixture
def square_svg(tmp_path: Path) -> Path:
    path = tmp_path / "square.svg"
    path.write_text(SQUARE_SVG, encoding="utf-8")
    return path


@pytest.fixture
def font_bytes() -> bytes:
    svg = build_svg_outline(SQUARE_SVG)
    record = assemble_glyph_set(
        [("A", 0x41, svg), ("B", 0x42, svg)],
        family_name="Test",
    )
    return compile_font(record)


@pytest.fixture
def font_file(tmp_path: Path, font_bytes: bytes) -> Path:
    path = tmp_path / "Test.otf"
    path.write_bytes(font_bytes)
    return path
