"""
msdf_tools/svg_outline.py

Maps the <path> data of an SVG document into one glyph outline in font
units (y grows up, baseline at the bottom of the viewBox).

- Finds every <path d="..."> in the document, depth first, document order.
- Normalizes commands with fontTools.svgLib: absolute coordinates, H/V as
  lines, S/T as full cubic/quadratic curves, arcs as cubic curves.
- Scales by viewBox *height* so wide documents keep their vertical extent:

    x' = (x - vb.x) * upm / vb.h
    y' = (vb.y + vb.h - y) * upm / vb.h

All paths of a document are appended to a single outline (one compound
glyph), never merged geometrically.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from fontTools.misc.transform import Transform
from fontTools.pens.boundsPen import BoundsPen
from fontTools.pens.recordingPen import RecordingPen, replayRecording
from fontTools.pens.transformPen import TransformPen
from fontTools.svgLib.path import parse_path

from .errors import InvalidSvgError, NoPathDataError, UnsupportedCommandError


DEFAULT_UPM = 1000
DEFAULT_CANVAS = 1000.0

Point = Tuple[float, float]
Operation = Tuple[str, Tuple[Point, ...]]

# fontTools pen vocabulary: move, line, cubic, quadratic, close
OUTLINE_OPERATIONS = ("moveTo", "lineTo", "curveTo", "qCurveTo", "closePath")
DRAWING_OPERATIONS = ("lineTo", "curveTo", "qCurveTo")

# Anything that is not a command letter, a number or a separator.
# fontTools' tokenizer skips such characters silently, so catch them first.
STRAY_COMMAND_RE = re.compile(r"[^MmZzLlHhVvCcSsQqTtAa0-9eE.,+\-\s]|(?<![0-9.])[eE]")
LIST_SEP_RE = re.compile(r"[\s,]+")
LENGTH_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


# -----------------------------
# Document tree
# -----------------------------

@dataclass
class SvgNode:
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["SvgNode"] = field(default_factory=list)


def _local_name(tag: str) -> str:
    # "{http://www.w3.org/2000/svg}path" -> "path"
    return tag.rsplit("}", 1)[-1]


def _to_node(elem: ET.Element) -> SvgNode:
    return SvgNode(
        name=_local_name(str(elem.tag)),
        attributes={_local_name(k): v for k, v in elem.attrib.items()},
        children=[_to_node(child) for child in elem],
    )


def parse_svg_tree(source: Union[str, bytes]) -> SvgNode:
    if isinstance(source, str):
        source = source.encode("utf-8")
    try:
        root = ET.fromstring(source)
    except ET.ParseError as e:
        raise InvalidSvgError(f"Malformed SVG document: {e}") from e
    return _to_node(root)


def walk(node: SvgNode) -> Iterator[SvgNode]:
    yield node
    for child in node.children:
        yield from walk(child)


def collect_path_data(root: SvgNode) -> List[str]:
    return [
        n.attributes["d"]
        for n in walk(root)
        if n.name == "path" and (n.attributes.get("d") or "").strip()
    ]


# -----------------------------
# viewBox
# -----------------------------

@dataclass(frozen=True)
class ViewBox:
    x: float
    y: float
    width: float
    height: float


def _parse_length(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    m = LENGTH_RE.match(value)
    if not m:
        raise InvalidSvgError(f"Invalid SVG length {value!r}")
    return float(m.group(1))


def parse_view_box(attributes: Mapping[str, str]) -> ViewBox:
    """
    Uses viewBox when present, otherwise width/height (default 1000x1000)
    with the origin at 0,0.
    """
    vb = (attributes.get("viewBox") or "").strip()
    if vb:
        parts = LIST_SEP_RE.split(vb)
        if len(parts) != 4:
            raise InvalidSvgError(f"Invalid viewBox {vb!r}")
        try:
            x, y, w, h = (float(p) for p in parts)
        except ValueError as e:
            raise InvalidSvgError(f"Invalid viewBox {vb!r}") from e
    else:
        x = y = 0.0
        w = _parse_length(attributes.get("width"), DEFAULT_CANVAS)
        h = _parse_length(attributes.get("height"), DEFAULT_CANVAS)

    if w <= 0 or h <= 0:
        raise InvalidSvgError(f"viewBox must have a positive size, got {w:g}x{h:g}")
    return ViewBox(x, y, w, h)


def view_box_transform(view_box: ViewBox, units_per_em: int = DEFAULT_UPM) -> Transform:
    s = units_per_em / view_box.height
    return Transform(s, 0, 0, -s, -view_box.x * s, (view_box.y + view_box.height) * s)


# -----------------------------
# Outline
# -----------------------------

@dataclass
class Outline:
    operations: List[Operation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.operations)

    def draw(self, pen) -> None:
        replayRecording(self.operations, pen)

    def extend(self, other: "Outline") -> None:
        self.operations.extend(other.operations)

    @property
    def has_geometry(self) -> bool:
        return any(op in DRAWING_OPERATIONS for op, _ in self.operations)

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        pen = BoundsPen(None)
        self.draw(pen)
        return pen.bounds

    def is_closed(self) -> bool:
        open_ = False
        for op, _ in self.operations:
            if op == "moveTo":
                if open_:
                    return False
                open_ = True
            elif op == "closePath":
                open_ = False
            elif not open_:
                return False
        return not open_


def _normalize_recording(recording: List[Tuple[str, tuple]]) -> Outline:
    """
    Keeps move/line/cubic/quad/close, closes open subpaths, and restarts a
    subpath at its start point when drawing continues after a close.
    """
    ops: List[Operation] = []
    open_ = False
    start: Optional[Point] = None

    for op, args in recording:
        if op == "endPath":
            op = "closePath"
        if op not in OUTLINE_OPERATIONS:
            raise UnsupportedCommandError(op)

        if op == "moveTo":
            if open_:
                ops.append(("closePath", ()))
            start = args[0]
            open_ = True
        elif op == "closePath":
            if not open_:
                continue
            open_ = False
        elif not open_:
            if start is None:
                raise InvalidSvgError("Path data must start with a moveto command")
            ops.append(("moveTo", (start,)))
            open_ = True

        ops.append((op, tuple(args)))

    if open_:
        ops.append(("closePath", ()))
    return Outline(ops)


def svg_path_to_outline(d: str, view_box: ViewBox, units_per_em: int = DEFAULT_UPM) -> Outline:
    stray = STRAY_COMMAND_RE.search(d)
    if stray:
        raise UnsupportedCommandError(stray.group(0))

    recorder = RecordingPen()
    pen = TransformPen(recorder, view_box_transform(view_box, units_per_em))
    try:
        parse_path(d, pen)
    except (ValueError, IndexError) as e:
        raise InvalidSvgError(f"Malformed path data {d[:40]!r}: {e}") from e

    return _normalize_recording(recorder.value)


@dataclass(frozen=True)
class SvgOutline:
    outline: Outline
    view_box: ViewBox


def build_svg_outline(source: Union[str, bytes], units_per_em: int = DEFAULT_UPM) -> SvgOutline:
    root = parse_svg_tree(source)
    paths = collect_path_data(root)
    if not paths:
        raise NoPathDataError("No <path> elements found in SVG.")

    view_box = parse_view_box(root.attributes)
    outline = Outline()
    for d in paths:
        outline.extend(svg_path_to_outline(d, view_box, units_per_em))
    return SvgOutline(outline, view_box)
