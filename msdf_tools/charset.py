"""
msdf_tools/charset.py

Turns a character selection into the sorted code point list handed to the
atlas engine.

Sources, first match wins:
  1) charset_file  (every character of the file's text)
  2) chars         (every character of the string)
  3) preset        ("ascii" = 32..126, "latin1" = 0..255)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import InvalidCharsetError, ResourceUnavailableError


PRESETS: Dict[str, range] = {
    "ascii": range(32, 127),
    "latin1": range(0, 256),
}


@dataclass(frozen=True)
class CharsetOptions:
    preset: str = "ascii"
    chars: Optional[str] = None
    charset_file: Optional[Path] = None


def unique_sorted(values: Iterable[int]) -> List[int]:
    return sorted(set(values))


def codepoints_of(text: str) -> List[int]:
    # str iterates by scalar value, so astral characters count once
    return unique_sorted(ord(ch) for ch in text)


def read_charset_file(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ResourceUnavailableError(f"Cannot read charset file {path}: {e}") from e


def build_charset(options: CharsetOptions) -> List[int]:
    """
    Resolves options to an ascending, duplicate-free list of code points.
    Raises InvalidCharsetError when the result would be empty.
    """
    if options.charset_file is not None:
        source = f"charset file {options.charset_file}"
        cps = codepoints_of(read_charset_file(options.charset_file))
    elif options.chars is not None:
        source = "--chars"
        cps = codepoints_of(options.chars)
    else:
        preset = PRESETS.get(options.preset)
        if preset is None:
            choices = ", ".join(sorted(PRESETS))
            raise InvalidCharsetError(f"Unknown charset preset {options.preset!r} (use one of: {choices})")
        source = f"preset {options.preset!r}"
        cps = list(preset)

    if not cps:
        raise InvalidCharsetError(f"Empty character set from {source}")
    return cps
