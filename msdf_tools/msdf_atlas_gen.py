"""
msdf_tools/msdf_atlas_gen.py

Atlas engine backed by the msdf-atlas-gen command line program
(https://github.com/Chlumsky/msdf-atlas-gen).

Each pack_glyphs() call writes the font and charset into a temp dir, runs the
program once, and reads back its PNG page (with Pillow) and JSON layout.
msdf-atlas-gen always produces exactly one page and never rotates glyphs.

Layout conversion (yorigin bottom, em units unless noted):
  range = pxrange / size
  left  = planeBounds.left + range/2     (plane bounds include the spread)
  top   = planeBounds.top  - range/2
  x, y  = atlasBounds in pixels, y flipped to a top-left origin
"""

from __future__ import annotations

import io
import json
import math
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from PIL import Image

from .engine import AtlasOptions, Bin, MsdfOptions, PlacedGlyph, PlacedRect
from .errors import AtlasEngineError


EXECUTABLE = "msdf-atlas-gen"

# msdf-atlas-gen metric name -> name in the atlas metadata
METRIC_NAMES = {
    "emSize": "emSize",
    "lineHeight": "lineHeight",
    "ascender": "ascenderY",
    "descender": "descenderY",
    "underlineY": "underlineY",
    "underlineThickness": "underlineThickness",
}


def find_executable(path: Optional[str] = None) -> str:
    if path:
        if not Path(path).is_file():
            raise AtlasEngineError(f"msdf-atlas-gen not found at {path}")
        return str(path)
    exe = shutil.which(EXECUTABLE)
    if not exe:
        raise AtlasEngineError(
            "msdf-atlas-gen not found on PATH.\n"
            "Install it from https://github.com/Chlumsky/msdf-atlas-gen\n"
            "or point --engine-path at the binary."
        )
    return exe


def _num(v: float) -> str:
    return f"{v:g}"


def charset_spec(charset: Sequence[int]) -> str:
    # msdf-atlas-gen charset syntax accepts bare decimal code points
    return ", ".join(str(cp) for cp in charset) + "\n"


def build_command(
    exe: str,
    font_path: Path,
    charset_path: Path,
    image_path: Path,
    json_path: Path,
    msdf_options: MsdfOptions,
    atlas_options: AtlasOptions,
) -> List[str]:
    cmd = [
        exe,
        "-font", str(font_path),
        "-charset", str(charset_path),
        "-type", "msdf",
        "-format", "png",
        "-yorigin", "bottom",
        "-imageout", str(image_path),
        "-json", str(json_path),
        "-size", _num(msdf_options.size),
        "-pxrange", _num(msdf_options.range),
        "-angle", _num(msdf_options.edge_threshold_angle),
        "-spacing", str(atlas_options.padding),
    ]
    if msdf_options.edge_coloring:
        cmd += ["-coloringstrategy", msdf_options.edge_coloring]
    if msdf_options.scanline:
        cmd.append("-scanline")
    if atlas_options.pot:
        cmd.append("-pots")
    else:
        cmd += ["-dimensions", str(atlas_options.max_width), str(atlas_options.max_height)]
    return cmd


def convert_metrics(raw: Mapping[str, Any]) -> Dict[str, float]:
    return {METRIC_NAMES.get(k, k): v for k, v in raw.items()}


def bin_from_layout(layout: Mapping[str, Any], msdf_options: MsdfOptions) -> Tuple[Bin, Dict[str, float]]:
    """
    Converts the JSON layout written by msdf-atlas-gen into one Bin plus the
    font metrics.
    """
    atlas = layout["atlas"]
    width = int(atlas["width"])
    height = int(atlas["height"])
    size = float(atlas.get("size", msdf_options.size))
    em_range = float(atlas.get("distanceRange", msdf_options.range)) / size

    rects: List[PlacedRect] = []
    for g in layout.get("glyphs", []):
        if "unicode" not in g:
            raise AtlasEngineError("msdf-atlas-gen layout has a glyph without a code point")
        advance = float(g.get("advance", 0.0))
        plane = g.get("planeBounds")
        box = g.get("atlasBounds")

        if not plane or not box:
            # whitespace: advance only, no ink
            glyph = PlacedGlyph(int(g["unicode"]), advance, 0.0, 0.0)
            rects.append(PlacedRect(glyph=glyph, x=0, y=0, width=0, height=0, range=em_range))
            continue

        x0 = math.floor(box["left"])
        x1 = math.ceil(box["right"])
        y0 = math.floor(box["bottom"])
        y1 = math.ceil(box["top"])
        glyph = PlacedGlyph(
            unicode=int(g["unicode"]),
            advance=advance,
            left=float(plane["left"]) + em_range / 2,
            top=float(plane["top"]) - em_range / 2,
        )
        rects.append(
            PlacedRect(glyph=glyph, x=x0, y=height - y1, width=x1 - x0, height=y1 - y0, range=em_range)
        )

    return Bin(width=width, height=height, rects=rects), convert_metrics(layout.get("metrics", {}))


class MsdfAtlasGenEngine:
    """
    Engine that shells out to msdf-atlas-gen. metrics are filled in by
    pack_glyphs().
    """

    def __init__(self, executable: Optional[str] = None):
        self.executable = find_executable(executable)
        self.metrics: Dict[str, float] = {}
        self._font_data: Optional[bytes] = None
        self._charset: List[int] = []

    def load_font(self, font_data: bytes, charset: Sequence[int]) -> None:
        self._font_data = bytes(font_data)
        self._charset = list(charset)

    def pack_glyphs(self, msdf_options: MsdfOptions, atlas_options: AtlasOptions) -> List[Bin]:
        if self._font_data is None:
            raise AtlasEngineError("pack_glyphs() called before load_font()")
        if atlas_options.allow_rotation:
            print("[warn] msdf-atlas-gen never rotates glyphs; rotation ignored", file=sys.stderr)

        with tempfile.TemporaryDirectory() as td:
            tmp = Path(td)
            font_path = tmp / "font.otf"
            charset_path = tmp / "charset.txt"
            image_path = tmp / "atlas.png"
            json_path = tmp / "atlas.json"
            font_path.write_bytes(self._font_data)
            charset_path.write_text(charset_spec(self._charset), encoding="utf-8")

            cmd = build_command(
                self.executable, font_path, charset_path, image_path, json_path,
                msdf_options, atlas_options,
            )
            proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False)
            if proc.returncode != 0 or not image_path.exists() or not json_path.exists():
                msg = (proc.stderr or proc.stdout).decode("utf-8", errors="replace").strip()
                raise AtlasEngineError(f"msdf-atlas-gen failed (exit {proc.returncode}): {msg}")

            layout = json.loads(json_path.read_text(encoding="utf-8"))
            with Image.open(image_path) as im:
                im.load()
                image = im.copy()

        page, self.metrics = bin_from_layout(layout, msdf_options)
        if page.width > atlas_options.max_width or page.height > atlas_options.max_height:
            raise AtlasEngineError(
                f"Atlas {page.width}x{page.height} exceeds "
                f"{atlas_options.max_width}x{atlas_options.max_height}; "
                "use a smaller --size or fewer characters"
            )
        page.image = image
        return [page]

    def create_atlas_image(self, bin: Bin) -> bytes:
        if bin.image is None:
            raise AtlasEngineError("page has no image payload")
        buf = io.BytesIO()
        bin.image.save(buf, format="PNG")
        return buf.getvalue()
