"""
msdf_tools/errors.py

Every failure a conversion can hit. All of them are fatal to the conversion
that raised them; the CLI prints the message and exits non-zero.
"""

from __future__ import annotations


class MsdfToolsError(Exception):
    """Base class for all conversion errors."""


class InvalidCharsetError(MsdfToolsError, ValueError):
    """Character selection is empty or names an unknown preset."""


class ResourceUnavailableError(MsdfToolsError, OSError):
    """An input file (charset list, font, input directory) could not be read."""


class InvalidSvgError(MsdfToolsError, ValueError):
    """SVG document is not well-formed or has an unusable view box."""


class NoPathDataError(InvalidSvgError):
    pass


class UnsupportedCommandError(InvalidSvgError):
    """Path data holds a command that cannot be expressed as line/cubic/quad/close."""

    def __init__(self, command: str):
        super().__init__(f"Unsupported SVG path command: {command}")
        self.command = command


class EmptyOutlineError(MsdfToolsError, ValueError):
    pass


class AtlasEngineError(MsdfToolsError, RuntimeError):
    """The external atlas generator is missing or failed."""
