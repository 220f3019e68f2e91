"""Convert fonts or SVG shapes into MSDF texture atlases for WebGL."""

__version__ = "0.1.0"
