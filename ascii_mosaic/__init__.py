"""
Decision-Tree ASCII Mosaic Renderer

Converts grayscale images into ASCII art by classifying fixed-size pixel
blocks with a pretrained binary decision tree:
- Model blob parsing (glyph bitmaps + flattened tree)
- Vectorized tree classification over all blocks
- Tiled CLAHE preprocessing for uneven lighting
- Text output plus a glyph mosaic preview

Based on N. Markus, M. Fratarcangeli, I. S. Pandzic and J. Ahlberg,
"Fast Rendering of Image Mosaics and ASCII Art", Computer Graphics Forum, 2015.
"""

__version__ = "1.2.0"

from .charsets import GLYPH_CHARS
from .config import RenderConfig, TrainingConfig
from .errors import AsciiArtError, CallerContractError, CapacityError, FormatError
from .model import AsciiArtModel, InternalNode, LeafNode, encode_model, load_builtin_model, load_model, parse_model
from .classifier import classify, classify_blocks
from .indexer import compute_index_matrix, crop_dimensions
from .preprocessing import equalize
from .renderer import AsciiArtRenderer, init, render, required_text_buffer_size
from .result import ASCIIResult

__all__ = [
    "GLYPH_CHARS",
    "RenderConfig",
    "TrainingConfig",
    "AsciiArtError",
    "CallerContractError",
    "CapacityError",
    "FormatError",
    "AsciiArtModel",
    "InternalNode",
    "LeafNode",
    "encode_model",
    "load_builtin_model",
    "load_model",
    "parse_model",
    "classify",
    "classify_blocks",
    "compute_index_matrix",
    "crop_dimensions",
    "equalize",
    "AsciiArtRenderer",
    "init",
    "render",
    "required_text_buffer_size",
    "ASCIIResult",
]
