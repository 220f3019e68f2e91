"""
msdf_tools/glyph_set.py

Wraps SVG outlines in a minimal font so the atlas engine can treat them like
glyphs of a real font.

- .notdef is always present (inset box, advance 0.6 em) and always first.
- SVG glyph advance = max(outline bbox width, viewBox width scaled to em),
  so the advance never clips the canvas the artwork was drawn on.
- compile_font() turns the record into OpenType/CFF bytes via FontBuilder.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from fontTools.fontBuilder import FontBuilder
from fontTools.misc.roundTools import otRound
from fontTools.pens.t2CharStringPen import T2CharStringPen

from .errors import EmptyOutlineError
from .svg_outline import DEFAULT_UPM, Outline, SvgOutline, ViewBox


NOTDEF = ".notdef"
SVG_GLYPH_NAME = "svgGlyph"

ASCENDER_RATIO = 0.8
DESCENDER_RATIO = -0.2
NOTDEF_INSET_RATIO = 0.2
NOTDEF_ADVANCE_RATIO = 0.6


@dataclass(frozen=True)
class GlyphEntry:
    name: str
    unicode: Optional[int]
    advance_width: float
    outline: Outline = field(default_factory=Outline)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("glyph name must not be empty")
        if self.unicode is not None and self.unicode < 0:
            raise ValueError(f"{self.name}: negative code point {self.unicode}")
        if self.advance_width < 0:
            raise ValueError(f"{self.name}: negative advance width {self.advance_width}")


@dataclass(frozen=True)
class GlyphSetRecord:
    units_per_em: int
    ascender: float
    descender: float
    glyphs: Tuple[GlyphEntry, ...]
    family_name: str = "SVG"
    style_name: str = "Regular"

    def __post_init__(self) -> None:
        object.__setattr__(self, "glyphs", tuple(self.glyphs))
        if self.units_per_em <= 0:
            raise ValueError(f"unitsPerEm must be positive, got {self.units_per_em}")
        if self.descender > 0:
            raise ValueError(f"descender must be <= 0, got {self.descender}")
        if not self.glyphs or self.glyphs[0].name != NOTDEF:
            raise ValueError(f"{NOTDEF} must be the first glyph")

        names = [g.name for g in self.glyphs]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate glyph names: {names}")
        cps = [g.unicode for g in self.glyphs if g.unicode is not None]
        if len(set(cps)) != len(cps):
            raise ValueError(f"duplicate code points: {cps}")

    @property
    def face_name(self) -> str:
        family = self.family_name.strip()
        if not family:
            return "SVG"
        return f"{family} {self.style_name}".strip()

    @property
    def charset(self) -> List[int]:
        return sorted(g.unicode for g in self.glyphs if g.unicode is not None)


# -----------------------------
# Glyphs
# -----------------------------

def build_notdef_outline(units_per_em: int = DEFAULT_UPM) -> Outline:
    lo = NOTDEF_INSET_RATIO * units_per_em
    hi = units_per_em - lo
    return Outline([
        ("moveTo", ((lo, lo),)),
        ("lineTo", ((hi, lo),)),
        ("lineTo", ((hi, hi),)),
        ("lineTo", ((lo, hi),)),
        ("closePath", ()),
    ])


def build_notdef_glyph(units_per_em: int = DEFAULT_UPM) -> GlyphEntry:
    return GlyphEntry(
        name=NOTDEF,
        unicode=None,
        advance_width=units_per_em * NOTDEF_ADVANCE_RATIO,
        outline=build_notdef_outline(units_per_em),
    )


def svg_advance_width(outline: Outline, view_box: ViewBox, units_per_em: int = DEFAULT_UPM) -> float:
    canvas = view_box.width * (units_per_em / view_box.height)
    bounds = outline.bounds()
    if bounds is None:
        return canvas
    x_min, _, x_max, _ = bounds
    return max(x_max - x_min, canvas)


def assemble_glyph_set(
    sources: Sequence[Tuple[str, int, SvgOutline]],
    family_name: str,
    units_per_em: int = DEFAULT_UPM,
) -> GlyphSetRecord:
    """
    sources: (glyph name, code point, outline) per glyph. Code points are the
    caller's choice. Raises EmptyOutlineError for an outline that draws nothing.
    """
    glyphs: List[GlyphEntry] = [build_notdef_glyph(units_per_em)]
    for name, codepoint, svg in sources:
        if not svg.outline.has_geometry:
            raise EmptyOutlineError(f"{name} (U+{codepoint:04X}): path data draws nothing")
        glyphs.append(
            GlyphEntry(
                name=name,
                unicode=codepoint,
                advance_width=svg_advance_width(svg.outline, svg.view_box, units_per_em),
                outline=svg.outline,
            )
        )

    return GlyphSetRecord(
        units_per_em=units_per_em,
        ascender=units_per_em * ASCENDER_RATIO,
        descender=units_per_em * DESCENDER_RATIO,
        glyphs=tuple(glyphs),
        family_name=family_name,
    )


def assemble_svg_glyph_set(svg: SvgOutline, codepoint: int, family_name: str) -> GlyphSetRecord:
    return assemble_glyph_set([(SVG_GLYPH_NAME, codepoint, svg)], family_name)


# -----------------------------
# Font compilation
# -----------------------------

def _ps_name(full_name: str) -> str:
    return re.sub(r"[^A-Za-z0-9-]", "", full_name.replace(" ", "-"))[:63] or "SVG-Regular"


def compile_font(record: GlyphSetRecord) -> bytes:
    """
    Builds an OpenType (CFF) font from the record. Quadratic segments are
    converted to cubics by the charstring pen.
    """
    fb = FontBuilder(record.units_per_em, isTTF=False)
    fb.setupGlyphOrder([g.name for g in record.glyphs])
    fb.setupCharacterMap({g.unicode: g.name for g in record.glyphs if g.unicode is not None})

    charstrings: Dict[str, object] = {}
    metrics: Dict[str, Tuple[int, int]] = {}
    for g in record.glyphs:
        advance = otRound(g.advance_width)
        pen = T2CharStringPen(advance, None)
        g.outline.draw(pen)
        charstrings[g.name] = pen.getCharString()

        bounds = g.outline.bounds()
        metrics[g.name] = (advance, otRound(bounds[0]) if bounds else 0)

    family = record.family_name.strip() or "SVG"
    full_name = record.face_name
    ps_name = _ps_name(full_name)

    fb.setupCFF(ps_name, {"FullName": full_name, "FamilyName": family}, charstrings, {})
    fb.setupHorizontalMetrics(metrics)

    asc = otRound(record.ascender)
    desc = otRound(record.descender)
    fb.setupHorizontalHeader(ascent=asc, descent=desc)
    fb.setupNameTable(
        {
            "familyName": family,
            "styleName": record.style_name,
            "fullName": full_name,
            "psName": ps_name,
            "version": "Version 1.0",
        }
    )
    fb.setupOS2(
        sTypoAscender=asc,
        sTypoDescender=desc,
        sTypoLineGap=0,
        usWinAscent=max(0, asc),
        usWinDescent=max(0, -desc),
        usWeightClass=400,
        usWidthClass=5,
    )
    fb.setupPost()

    buf = io.BytesIO()
    fb.save(buf)
    return buf.getvalue()
