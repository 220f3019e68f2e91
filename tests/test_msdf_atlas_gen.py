import json
import subprocess
from pathlib import Path

import pytest
from PIL import Image

from msdf_tools import msdf_atlas_gen
from msdf_tools.atlas import build_atlas_metadata, round_px
from msdf_tools.engine import AtlasOptions, MsdfOptions
from msdf_tools.errors import AtlasEngineError
from msdf_tools.msdf_atlas_gen import (
    MsdfAtlasGenEngine,
    bin_from_layout,
    build_command,
    charset_spec,
    find_executable,
)


LAYOUT = {
    "atlas": {"type": "msdf", "distanceRange": 8, "size": 48, "width": 64, "height": 64, "yOrigin": "bottom"},
    "metrics": {
        "emSize": 1,
        "lineHeight": 1.2,
        "ascender": 0.8,
        "descender": -0.2,
        "underlineY": -0.1,
        "underlineThickness": 0.05,
    },
    "glyphs": [
        {"unicode": 32, "advance": 0.25},
        {
            "unicode": 65,
            "advance": 0.6,
            "planeBounds": {"left": -0.125, "bottom": -0.125, "right": 0.625, "top": 0.75},
            "atlasBounds": {"left": 0.5, "bottom": 20.5, "right": 36.5, "top": 62.5},
        },
    ],
}


def test_layout_becomes_one_bin():
    page, metrics = bin_from_layout(LAYOUT, MsdfOptions())
    assert (page.width, page.height) == (64, 64)

    space, a = page.rects
    assert (space.width, space.height) == (0, 0)
    assert space.glyph.advance == 0.25

    assert (a.x, a.y, a.width, a.height) == (0, 1, 37, 43)
    assert a.range == pytest.approx(8 / 48)
    assert a.glyph.left == pytest.approx(-0.125 + 4 / 48)
    assert a.glyph.top == pytest.approx(0.75 - 4 / 48)

    assert metrics["ascenderY"] == 0.8
    assert metrics["descenderY"] == -0.2
    assert metrics["underlineThickness"] == 0.05


def test_offsets_land_on_plane_bounds():
    page, metrics = bin_from_layout(LAYOUT, MsdfOptions())
    meta = build_atlas_metadata([page], "a", 48, 8, metrics)
    a = meta.glyphs[1]
    assert a.xoffset == round_px(48, -0.125)
    assert a.yoffset == round_px(48, 0.8 - 0.75)
    assert meta.glyphs[0].xoffset == 0


def test_glyph_without_code_point_is_rejected():
    layout = dict(LAYOUT, glyphs=[{"index": 3, "advance": 0.5}])
    with pytest.raises(AtlasEngineError):
        bin_from_layout(layout, MsdfOptions())


def test_command_line():
    cmd = build_command(
        "msdf-atlas-gen", Path("f.otf"), Path("c.txt"), Path("a.png"), Path("a.json"),
        MsdfOptions(size=32, range=4, edge_coloring="inktrap", edge_threshold_angle=2.5, scanline=True),
        AtlasOptions(padding=1, pot=True),
    )
    assert cmd[0] == "msdf-atlas-gen"
    assert cmd[cmd.index("-size") + 1] == "32"
    assert cmd[cmd.index("-pxrange") + 1] == "4"
    assert cmd[cmd.index("-angle") + 1] == "2.5"
    assert cmd[cmd.index("-coloringstrategy") + 1] == "inktrap"
    assert cmd[cmd.index("-spacing") + 1] == "1"
    assert "-scanline" in cmd
    assert "-pots" in cmd
    assert "-dimensions" not in cmd


def test_command_line_fixed_dimensions():
    cmd = build_command(
        "msdf-atlas-gen", Path("f"), Path("c"), Path("i"), Path("j"),
        MsdfOptions(), AtlasOptions(max_width=512, max_height=256, pot=False),
    )
    i = cmd.index("-dimensions")
    assert cmd[i + 1:i + 3] == ["512", "256"]
    assert "-pots" not in cmd
    assert "-coloringstrategy" not in cmd
    assert "-scanline" not in cmd


def test_charset_spec():
    assert charset_spec([32, 65, 0x1F600]) == "32, 65, 128512\n"


def test_missing_executable(monkeypatch, tmp_path):
    monkeypatch.setattr(msdf_atlas_gen.shutil, "which", lambda name: None)
    with pytest.raises(AtlasEngineError, match="not found"):
        find_executable()
    with pytest.raises(AtlasEngineError):
        find_executable(str(tmp_path / "missing"))


@pytest.fixture
def fake_exe(tmp_path):
    exe = tmp_path / "msdf-atlas-gen"
    exe.write_text("#!/bin/sh\n", encoding="utf-8")
    return str(exe)


def fake_run(returncode=0, layout=LAYOUT, err=b""):
    calls = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        if returncode == 0:
            image = Path(cmd[cmd.index("-imageout") + 1])
            Image.new("RGB", (layout["atlas"]["width"], layout["atlas"]["height"])).save(image)
            Path(cmd[cmd.index("-json") + 1]).write_text(json.dumps(layout), encoding="utf-8")
        return subprocess.CompletedProcess(cmd, returncode, stdout=b"", stderr=err)

    run.calls = calls
    return run


def test_pack_glyphs(monkeypatch, fake_exe, font_bytes):
    run = fake_run()
    monkeypatch.setattr(msdf_atlas_gen.subprocess, "run", run)

    engine = MsdfAtlasGenEngine(fake_exe)
    engine.load_font(font_bytes, [32, 65])
    bins = engine.pack_glyphs(MsdfOptions(), AtlasOptions())

    assert len(bins) == 1
    assert [r.glyph.unicode for r in bins[0].rects] == [32, 65]
    assert engine.metrics["ascenderY"] == 0.8
    assert engine.create_atlas_image(bins[0]).startswith(b"\x89PNG")
    assert run.calls[0][0] == fake_exe


def test_pack_before_load(fake_exe):
    with pytest.raises(AtlasEngineError):
        MsdfAtlasGenEngine(fake_exe).pack_glyphs(MsdfOptions(), AtlasOptions())


def test_failed_run_reports_stderr(monkeypatch, fake_exe, font_bytes):
    monkeypatch.setattr(msdf_atlas_gen.subprocess, "run", fake_run(returncode=1, err=b"bad font"))
    engine = MsdfAtlasGenEngine(fake_exe)
    engine.load_font(font_bytes, [65])
    with pytest.raises(AtlasEngineError, match="bad font"):
        engine.pack_glyphs(MsdfOptions(), AtlasOptions())


def test_oversized_atlas(monkeypatch, fake_exe, font_bytes):
    monkeypatch.setattr(msdf_atlas_gen.subprocess, "run", fake_run())
    engine = MsdfAtlasGenEngine(fake_exe)
    engine.load_font(font_bytes, [65])
    with pytest.raises(AtlasEngineError, match="exceeds"):
        engine.pack_glyphs(MsdfOptions(), AtlasOptions(max_width=32, max_height=32))
