"""
msdf_tools/convert.py

One conversion = one input file -> {base}_N.png pages + {base}.json.

- font: charset + font bytes go straight to the engine.
- svg:  outline -> synthetic one-glyph font -> engine.
- batch: every font in a directory, then every SVG, strictly in order.
  SVGs get consecutive private-use code points starting at U+E000.

Any error aborts the conversion (and the whole batch).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .atlas import AtlasMetadata, write_atlas, write_metadata
from .charset import CharsetOptions, build_charset
from .engine import AtlasEngine, AtlasOptions, MsdfOptions
from .errors import InvalidCharsetError, ResourceUnavailableError
from .glyph_set import assemble_svg_glyph_set, compile_font
from .msdf_atlas_gen import MsdfAtlasGenEngine
from .svg_outline import build_svg_outline


FONT_EXTS = (".ttf", ".otf", ".woff")
SVG_EXT = ".svg"
DEFAULT_CODEPOINT = 0xE000
MAX_CODEPOINT = 0x10FFFF

EngineFactory = Callable[[Optional[str]], AtlasEngine]


@dataclass(frozen=True)
class ConversionOptions:
    size: float = 48
    range: float = 8
    edge_coloring: Optional[str] = None
    edge_threshold_angle: float = 3
    scanline: bool = False
    max_width: int = 1024
    max_height: int = 1024
    padding: int = 2
    pot: bool = True
    rotate: bool = False
    basename: Optional[str] = None
    out_dir: Path = Path("out")
    engine_path: Optional[str] = None

    def msdf_options(self) -> MsdfOptions:
        return MsdfOptions(
            size=self.size,
            range=self.range,
            edge_coloring=self.edge_coloring,
            edge_threshold_angle=self.edge_threshold_angle,
            scanline=self.scanline,
        )

    def atlas_options(self) -> AtlasOptions:
        return AtlasOptions(
            max_width=self.max_width,
            max_height=self.max_height,
            padding=self.padding,
            pot=self.pot,
            allow_rotation=self.rotate,
            smart=True,
        )

    def base_name_for(self, source: Path) -> str:
        return self.basename or Path(source).stem


@dataclass(frozen=True)
class ConversionResult:
    metadata: AtlasMetadata
    json_path: Path


def default_engine_factory(engine_path: Optional[str] = None) -> AtlasEngine:
    return MsdfAtlasGenEngine(engine_path)


def _read_bytes(path: Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ResourceUnavailableError(f"Cannot read {path}: {e}") from e


def _write_outputs(engine: AtlasEngine, source: Path, options: ConversionOptions, face: str) -> ConversionResult:
    base = options.base_name_for(source)
    meta = write_atlas(engine, base, options.out_dir, options.msdf_options(), options.atlas_options(), face=face)
    json_path = write_metadata(meta, options.out_dir, base)
    print(f"Wrote {len(meta.pages)} page(s) and metadata -> {json_path}")
    return ConversionResult(meta, json_path)


def run_font_conversion(
    font_path: Path,
    options: Optional[ConversionOptions] = None,
    charset_options: Optional[CharsetOptions] = None,
    engine_factory: EngineFactory = default_engine_factory,
) -> ConversionResult:
    options = options or ConversionOptions()
    charset = build_charset(charset_options or CharsetOptions())
    font_data = _read_bytes(font_path)

    engine = engine_factory(options.engine_path)
    engine.load_font(font_data, charset)
    return _write_outputs(engine, Path(font_path), options, face="")


def run_svg_conversion(
    svg_path: Path,
    options: Optional[ConversionOptions] = None,
    codepoint: int = DEFAULT_CODEPOINT,
    engine_factory: EngineFactory = default_engine_factory,
) -> ConversionResult:
    options = options or ConversionOptions()
    if not 0 <= codepoint <= MAX_CODEPOINT:
        raise InvalidCharsetError(f"Code point {codepoint} is outside 0..0x{MAX_CODEPOINT:X}")

    svg_path = Path(svg_path)
    svg = build_svg_outline(_read_bytes(svg_path))
    record = assemble_svg_glyph_set(svg, codepoint, family_name=svg_path.stem)

    engine = engine_factory(options.engine_path)
    engine.load_font(compile_font(record), record.charset)
    return _write_outputs(engine, svg_path, options, face=record.face_name)


def list_batch_inputs(in_dir: Path) -> Tuple[List[Path], List[Path]]:
    in_dir = Path(in_dir)
    if not in_dir.is_dir():
        raise ResourceUnavailableError(f"Input directory not found: {in_dir.resolve()}")

    fonts: List[Path] = []
    svgs: List[Path] = []
    for p in sorted(in_dir.iterdir()):
        if not p.is_file():
            continue
        ext = p.suffix.lower()
        if ext in FONT_EXTS:
            fonts.append(p)
        elif ext == SVG_EXT:
            svgs.append(p)
    return fonts, svgs


def run_batch(
    in_dir: Path = Path("in"),
    options: Optional[ConversionOptions] = None,
    engine_factory: EngineFactory = default_engine_factory,
) -> List[ConversionResult]:
    # each input names its own outputs
    options = replace(options or ConversionOptions(), basename=None)
    fonts, svgs = list_batch_inputs(in_dir)
    if not fonts and not svgs:
        print(f"No input files found in {in_dir} (expected .ttf, .otf, .woff, .svg).")
        return []

    results: List[ConversionResult] = []
    for font_path in fonts:
        print(f"Processing font: {font_path.name}")
        results.append(run_font_conversion(font_path, options, CharsetOptions(preset="ascii"), engine_factory))

    for i, svg_path in enumerate(svgs):
        print(f"Processing SVG: {svg_path.name}")
        results.append(run_svg_conversion(svg_path, options, DEFAULT_CODEPOINT + i, engine_factory))

    return results
