"""
msdf_tools/engine.py

Request/response types of the external glyph atlas engine and the interface
every engine implements. The engine rasterizes distance fields and packs them
into pages; this package only prepares its input and reshapes its output.

Units: rectangles are atlas pixels; advance/left/top/range are em units.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence


EDGE_COLORING_MODES = ("simple", "inktrap", "distance")


@dataclass(frozen=True)
class MsdfOptions:
    size: float = 48
    range: float = 8
    edge_coloring: Optional[str] = None
    edge_threshold_angle: float = 3
    scanline: bool = False


@dataclass(frozen=True)
class AtlasOptions:
    max_width: int = 1024
    max_height: int = 1024
    padding: int = 2
    pot: bool = True
    allow_rotation: bool = False
    smart: bool = True


@dataclass(frozen=True)
class PlacedGlyph:
    unicode: int
    advance: float
    left: float
    top: float


@dataclass(frozen=True)
class PlacedRect:
    glyph: Optional[PlacedGlyph]
    x: int
    y: int
    width: int
    height: int
    range: float
    rotated: bool = False


@dataclass
class Bin:
    width: int
    height: int
    rects: List[PlacedRect] = field(default_factory=list)
    # engine-specific page payload (e.g. a PIL image)
    image: Any = None


class AtlasEngine(Protocol):
    metrics: Dict[str, float]

    def load_font(self, font_data: bytes, charset: Sequence[int]) -> None:
        ...

    def pack_glyphs(self, msdf_options: MsdfOptions, atlas_options: AtlasOptions) -> List[Bin]:
        ...

    def create_atlas_image(self, bin: Bin) -> bytes:
        ...
