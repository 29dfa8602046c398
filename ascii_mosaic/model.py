"""
Model Store

Parses the pretrained model blob into a glyph bitmap table and a flattened
decision tree, and serializes models back into the same layout.

Blob layout (integers are int32, little-endian unless stated otherwise):

    N | rows | cols | N * (rows * cols) bitmap bytes | tree

Tree region (may be empty, meaning "no tree"):

    depth | (2 ** (depth + 1) - 1) nodes of 4 bytes [flag, b1, b2, b3]

flag 1 is an internal node testing pixel (b1, b2) against threshold b3,
flag 0 is a leaf carrying glyph index b1. Node i has children 2i+1, 2i+2.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence, Tuple, Union
import os
import warnings
import numpy as np

from .charsets import GLYPH_CHARS, glyph_char
from .errors import FormatError


HEADER_SIZE = 12
NODE_SIZE = 4
MAX_TREE_DEPTH = 24

FLAG_LEAF = 0
FLAG_INTERNAL = 1

BUILTIN_MODEL_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "ascii_art.bin")


@dataclass(frozen=True)
class InternalNode:
    """Decision node: go right when block[row, col] > threshold."""
    row: int
    col: int
    threshold: int


@dataclass(frozen=True)
class LeafNode:
    """Terminal node carrying a glyph index."""
    glyph: int


TreeNode = Union[InternalNode, LeafNode]
Tree = Tuple[Optional[TreeNode], ...]


def node_count(depth: int) -> int:
    """Number of heap slots in a complete tree of the given depth."""
    return 2 ** (depth + 1) - 1


def tree_depth(tree: Sequence[Optional[TreeNode]]) -> int:
    """Smallest depth whose complete tree holds every slot of `tree`."""
    depth = 0
    while node_count(depth) < len(tree):
        depth += 1
    return depth


class AsciiArtModel:
    """
    A parsed model: glyph bitmaps plus the classification tree.

    The glyph bitmaps are read-only views into the blob this object owns,
    so they stay valid for as long as the model is alive.
    """

    def __init__(
        self,
        blob: bytes,
        n_glyphs: int,
        rows: int,
        cols: int,
        glyphs: np.ndarray,
        tree: Optional[Tree],
        depth: int,
    ):
        self._blob = blob
        self.n_glyphs = n_glyphs
        self.rows = rows
        self.cols = cols
        self._glyphs = glyphs
        self.tree = tree
        self.depth = depth

    @property
    def block_size(self) -> Tuple[int, int]:
        """Block size as (rows, cols)."""
        return self.rows, self.cols

    @property
    def glyphs(self) -> np.ndarray:
        """N x rows x cols read-only bitmap table."""
        return self._glyphs

    def glyph(self, index: int) -> np.ndarray:
        return self._glyphs[index]

    def char(self, index: int) -> str:
        """Printable character for a glyph index."""
        return glyph_char(index)

    def to_bytes(self) -> bytes:
        return self._blob

    def save(self, path: str):
        """Write the model blob to disk."""
        os.makedirs(os.path.dirname(path) if os.path.dirname(path) else '.', exist_ok=True)
        with open(path, 'wb') as f:
            f.write(self._blob)

    def __repr__(self) -> str:
        return (
            f"AsciiArtModel(n_glyphs={self.n_glyphs}, block={self.rows}x{self.cols}, "
            f"depth={self.depth if self.tree is not None else None})"
        )


def _int32(byteorder: str) -> np.dtype:
    return np.dtype('<i4' if byteorder == "little" else '>i4')


def _parse_tree(region: bytes, n_glyphs: int, rows: int, cols: int, byteorder: str) -> Tuple[Tree, int]:
    if len(region) < 4:
        raise FormatError(f"Tree region of {len(region)} bytes is too short for its depth header")

    depth = int(np.frombuffer(region, dtype=_int32(byteorder), count=1)[0])
    if not 0 <= depth <= MAX_TREE_DEPTH:
        raise FormatError(f"Tree depth {depth} outside 0..{MAX_TREE_DEPTH}")

    count = node_count(depth)
    expected = 4 + count * NODE_SIZE
    if len(region) != expected:
        raise FormatError(
            f"Tree of depth {depth} needs {expected} bytes ({count} nodes), blob carries {len(region)}"
        )

    raw = np.frombuffer(region, dtype=np.uint8, offset=4).reshape(count, NODE_SIZE)
    first_leaf_level = node_count(depth - 1) if depth > 0 else 0

    nodes = []
    for i, (flag, b1, b2, b3) in enumerate(raw.tolist()):
        if flag == FLAG_INTERNAL:
            if i >= first_leaf_level:
                raise FormatError(f"Internal node {i} on the last tree level has no children")
            if b1 >= rows or b2 >= cols:
                raise FormatError(f"Node {i} tests pixel ({b1}, {b2}) outside the {rows}x{cols} block")
            nodes.append(InternalNode(b1, b2, b3))
        elif flag == FLAG_LEAF:
            if b1 >= n_glyphs:
                raise FormatError(f"Leaf {i} points at glyph {b1}, model has {n_glyphs}")
            nodes.append(LeafNode(b1))
        else:
            raise FormatError(f"Node {i} has unknown flag {flag}")

    return tuple(nodes), depth


def parse_model(blob: bytes, byteorder: str = "little") -> AsciiArtModel:
    """
    Parse a serialized model.

    Args:
        blob: Model bytes (header, glyph bitmaps, tree)
        byteorder: "little" or "big", must match the producer

    Returns:
        AsciiArtModel whose glyph table aliases `blob`

    Raises:
        FormatError: If the blob is truncated or inconsistent
    """
    blob = bytes(blob)
    if len(blob) < HEADER_SIZE:
        raise FormatError(f"Model blob of {len(blob)} bytes is shorter than the {HEADER_SIZE}-byte header")

    n_glyphs, rows, cols = (int(v) for v in np.frombuffer(blob, dtype=_int32(byteorder), count=3))

    if n_glyphs <= 0 or rows <= 0 or cols <= 0:
        raise FormatError(f"Invalid model header: N={n_glyphs}, rows={rows}, cols={cols}")
    if n_glyphs > len(GLYPH_CHARS):
        raise FormatError(f"Model declares {n_glyphs} glyphs, the code table has {len(GLYPH_CHARS)}")
    if rows > 256 or cols > 256:
        raise FormatError(f"Block size {rows}x{cols} does not fit the 8-bit node offsets")

    bitmap_end = HEADER_SIZE + n_glyphs * rows * cols
    if len(blob) < bitmap_end:
        raise FormatError(
            f"Model blob of {len(blob)} bytes is shorter than header + {n_glyphs} bitmaps ({bitmap_end} bytes)"
        )

    glyphs = np.frombuffer(blob, dtype=np.uint8, count=n_glyphs * rows * cols, offset=HEADER_SIZE)
    glyphs = glyphs.reshape(n_glyphs, rows, cols)

    tree: Optional[Tree] = None
    depth = 0
    if len(blob) > bitmap_end:
        tree, depth = _parse_tree(blob[bitmap_end:], n_glyphs, rows, cols, byteorder)

    return AsciiArtModel(blob, n_glyphs, rows, cols, glyphs, tree, depth)


def encode_model(
    glyphs: np.ndarray,
    tree: Optional[Sequence[Optional[TreeNode]]] = None,
    byteorder: str = "little",
) -> bytes:
    """
    Serialize glyph bitmaps and a heap-ordered tree into a model blob.

    Args:
        glyphs: N x rows x cols uint8 bitmaps
        tree: Heap-ordered nodes; None slots are written as empty leaves.
            Padded with empty leaves up to a complete tree.
        byteorder: Integer byte order

    Returns:
        Blob accepted by parse_model
    """
    glyphs = np.ascontiguousarray(glyphs, dtype=np.uint8)
    if glyphs.ndim != 3:
        raise ValueError(f"glyphs must be N x rows x cols, got shape {glyphs.shape}")

    n_glyphs, rows, cols = glyphs.shape
    parts = [np.array([n_glyphs, rows, cols], dtype=_int32(byteorder)).tobytes(), glyphs.tobytes()]

    if tree is not None:
        depth = tree_depth(tree)
        raw = np.zeros((node_count(depth), NODE_SIZE), dtype=np.uint8)
        for i, node in enumerate(tree):
            if isinstance(node, InternalNode):
                raw[i] = (FLAG_INTERNAL, node.row, node.col, node.threshold)
            elif isinstance(node, LeafNode):
                raw[i] = (FLAG_LEAF, node.glyph, 0, 0)
        parts.append(np.array([depth], dtype=_int32(byteorder)).tobytes())
        parts.append(raw.tobytes())

    return b"".join(parts)


def load_model(path: str, byteorder: str = "little") -> AsciiArtModel:
    """Load a model blob from disk."""
    with open(path, 'rb') as f:
        return parse_model(f.read(), byteorder=byteorder)


@lru_cache(maxsize=1)
def _trained_builtin_model() -> AsciiArtModel:
    from .training import produce_model

    warnings.warn(
        f"No model blob at {BUILTIN_MODEL_PATH}; training the built-in model. "
        "Run scripts/train_model.py to save one."
    )
    return produce_model()


def load_builtin_model(path: Optional[str] = None, byteorder: str = "little") -> AsciiArtModel:
    """
    Load the built-in model.

    Looks at `path`, then ASCII_MOSAIC_MODEL, then the packaged blob. When
    none exists the model is produced from rasterized glyphs once per process.
    """
    path = path or os.getenv("ASCII_MOSAIC_MODEL")
    if path:
        return load_model(path, byteorder=byteorder)

    if os.path.exists(BUILTIN_MODEL_PATH):
        return load_model(BUILTIN_MODEL_PATH, byteorder=byteorder)

    return _trained_builtin_model()
