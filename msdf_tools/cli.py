#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
msdf_tools/cli.py

Convert fonts or SVGs into MSDF atlases for WebGL.

Requirements:
  pip install -e .
  msdf-atlas-gen on PATH (or --engine-path)

Usage:
  msdf-tools font fonts/Inter.ttf --charset latin1
  msdf-tools font fonts/Inter.ttf --chars "0123456789"
  msdf-tools svg icons/star.svg --codepoint 57345 --size 64
  msdf-tools                      # batch: every font then every SVG in ./in
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .charset import PRESETS, CharsetOptions
from .convert import DEFAULT_CODEPOINT, ConversionOptions, run_batch, run_font_conversion, run_svg_conversion
from .engine import EDGE_COLORING_MODES
from .errors import MsdfToolsError


def add_common_options(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--size", type=float, default=48, help="MSDF pixel size")
    ap.add_argument("--range", type=float, default=8, help="Distance field spread")
    ap.add_argument("--edge-coloring", choices=EDGE_COLORING_MODES, default=None, help="Edge coloring mode")
    ap.add_argument("--edge-threshold-angle", type=float, default=3, help="Angle threshold for edge coloring")
    ap.add_argument("--scanline", action="store_true", help="Enable scanline rendering")
    ap.add_argument("--max-width", type=int, default=1024, help="Atlas max width")
    ap.add_argument("--max-height", type=int, default=1024, help="Atlas max height")
    ap.add_argument("--padding", type=int, default=2, help="Atlas padding")
    ap.add_argument("--pot", action=argparse.BooleanOptionalAction, default=True, help="Force power-of-two atlases")
    ap.add_argument("--rotate", action="store_true", help="Allow rect rotation when packing")
    ap.add_argument("--basename", type=str, default=None, help="Basename for output files")
    ap.add_argument("--out-dir", type=Path, default=Path("out"), help="Output directory")
    ap.add_argument("--engine-path", type=str, default=None, help="Path to the msdf-atlas-gen binary")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="msdf-tools",
        description="Convert fonts or SVGs into MSDF atlases for WebGL",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="command", required=True)

    font = sub.add_parser("font", help="Convert a font file (ttf/otf/woff) into an MSDF atlas")
    font.add_argument("file", type=Path)
    font.add_argument("--charset", choices=sorted(PRESETS), default="ascii", help="Character preset")
    font.add_argument("--chars", type=str, default=None, help="Explicit characters to include")
    font.add_argument("--charset-file", type=Path, default=None, help="File containing characters to include")
    add_common_options(font)

    svg = sub.add_parser("svg", help="Convert an SVG path into an MSDF atlas via a temporary font")
    svg.add_argument("file", type=Path)
    svg.add_argument("--codepoint", type=int, default=DEFAULT_CODEPOINT, help="Unicode code point to assign")
    add_common_options(svg)

    return ap


def options_from_args(args: argparse.Namespace) -> ConversionOptions:
    return ConversionOptions(
        size=args.size,
        range=args.range,
        edge_coloring=args.edge_coloring,
        edge_threshold_angle=args.edge_threshold_angle,
        scanline=args.scanline,
        max_width=args.max_width,
        max_height=args.max_height,
        padding=args.padding,
        pot=args.pot,
        rotate=args.rotate,
        basename=args.basename,
        out_dir=args.out_dir,
        engine_path=args.engine_path,
    )


def run(argv: List[str]) -> None:
    if not argv:
        run_batch(Path("in"))
        return

    args = build_parser().parse_args(argv)
    options = options_from_args(args)
    if args.command == "font":
        charset = CharsetOptions(preset=args.charset, chars=args.chars, charset_file=args.charset_file)
        run_font_conversion(args.file, options, charset)
    else:
        run_svg_conversion(args.file, options, codepoint=args.codepoint)


def main(argv: Optional[List[str]] = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    try:
        run(argv)
    except MsdfToolsError as e:
        print(f"[err] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
