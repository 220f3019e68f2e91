"""
msdf_tools/atlas.py

Turns the engine's packed pages into the metadata document read by the
WebGL renderer, and writes pages + JSON to disk.

Per placed glyph (size = em size in px, range/advance/left/top in em):
  xadvance = round_px(size, advance)
  xoffset  = round_px(size, left - range/2)
  yoffset  = round_px(size, ascenderY - (top + range/2))

range/2 is the border the distance field adds around the ink. Glyphs
without ink (empty rect) get no border, so both offsets are 0.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from .engine import AtlasEngine, AtlasOptions, Bin, MsdfOptions


IMAGE_EXT = "png"


def round_px(size: float, value: float) -> float:
    """value * size rounded half-up (not half-even) to 2 decimals."""
    return math.floor(value * size * 100 + 0.5) / 100


def page_file_name(base_name: str, index: int, ext: str = IMAGE_EXT) -> str:
    return f"{base_name}_{index}.{ext}"


@dataclass(frozen=True)
class AtlasPage:
    file: str
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class AtlasGlyph:
    id: int
    page: int
    x: int
    y: int
    width: int
    height: int
    xadvance: float
    xoffset: float
    yoffset: float
    rotated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }
        # absent means "not rotated"
        if self.rotated:
            d["rotated"] = True
        d["xadvance"] = self.xadvance
        d["xoffset"] = self.xoffset
        d["yoffset"] = self.yoffset
        return d


@dataclass
class AtlasMetadata:
    size: float
    distance_range: float
    metrics: Mapping[str, Any]
    face: str = ""
    pages: List[AtlasPage] = field(default_factory=list)
    glyphs: List[AtlasGlyph] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": [p.to_dict() for p in self.pages],
            "glyphs": [g.to_dict() for g in self.glyphs],
            "info": {"size": self.size, "face": self.face},
            "metrics": dict(self.metrics),
            "distanceRange": self.distance_range,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def build_atlas_metadata(
    bins: Sequence[Bin],
    base_name: str,
    size: float,
    distance_range: float,
    metrics: Mapping[str, Any],
    face: str = "",
) -> AtlasMetadata:
    """
    Pages keep engine order; glyphs are page-major then packing order and are
    never resorted by code point.
    """
    meta = AtlasMetadata(size=size, distance_range=distance_range, metrics=metrics, face=face)
    ascender = metrics["ascenderY"]

    for i, b in enumerate(bins):
        meta.pages.append(AtlasPage(page_file_name(base_name, i), b.width, b.height))

        for rect in b.rects:
            glyph = rect.glyph
            assert glyph is not None, f"page {i}: rect at ({rect.x}, {rect.y}) has no glyph"

            has_ink = bool(rect.width and rect.height)
            half = rect.range / 2
            meta.glyphs.append(
                AtlasGlyph(
                    id=glyph.unicode,
                    page=i,
                    x=rect.x,
                    y=rect.y,
                    width=rect.width,
                    height=rect.height,
                    xadvance=round_px(size, glyph.advance),
                    xoffset=round_px(size, glyph.left - half) if has_ink else 0,
                    yoffset=round_px(size, ascender - (glyph.top + half)) if has_ink else 0,
                    rotated=bool(rect.rotated),
                )
            )

    return meta


# -----------------------------
# Output
# -----------------------------

def write_atlas(
    engine: AtlasEngine,
    base_name: str,
    out_dir: Path,
    msdf_options: MsdfOptions,
    atlas_options: AtlasOptions,
    face: str = "",
) -> AtlasMetadata:
    """Packs the loaded glyphs, writes one image per page, returns the metadata."""
    bins = engine.pack_glyphs(msdf_options, atlas_options)

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    meta = build_atlas_metadata(
        bins,
        base_name,
        size=msdf_options.size,
        distance_range=msdf_options.range,
        metrics=engine.metrics,
        face=face,
    )
    for page, b in zip(meta.pages, bins):
        (out_dir / page.file).write_bytes(engine.create_atlas_image(b))
    return meta


def write_metadata(meta: AtlasMetadata, out_dir: Path, base_name: str) -> Path:
    out_path = Path(out_dir) / f"{base_name}.json"
    out_path.write_text(meta.to_json(), encoding="utf-8")
    return out_path
