"""
Error types raised by the renderer.

Every error is terminal for the call that raised it only; a loaded model
and its renderer stay usable afterwards.
"""


class AsciiArtError(Exception):
    """Base class for all ascii_mosaic errors."""


class FormatError(AsciiArtError, ValueError):
    """Malformed model blob, or a tree traversal that leaves the tree."""


class CapacityError(AsciiArtError, RuntimeError):
    """Image block count exceeds the configured index matrix capacity."""


class CallerContractError(AsciiArtError, ValueError):
    """A caller-supplied buffer is too small for the requested render."""
