"""
Decision Tree Classifier

Maps a pixel block to a glyph index by walking the flattened tree from the
root: at each internal node the pixel (row, col) is compared against the
node threshold with an integer greater-than test, false goes to the left
child 2i+1, true to the right child 2i+2.

`classify` walks one block; `classify_blocks` walks a whole stack of blocks
in lockstep with numpy and gives identical answers.
"""

from typing import Optional, Sequence, Tuple
import numpy as np

from .errors import FormatError
from .model import InternalNode, LeafNode, TreeNode, tree_depth


# Index matrices hold one byte per block
MAX_GLYPH_INDEX = 255


def _pixel(block, row: int, col: int, stride: Optional[int]) -> int:
    if stride is None:
        return int(block[row][col])
    return int(block[row * stride + col])


def classify(
    tree: Sequence[Optional[TreeNode]],
    block,
    stride: Optional[int] = None,
) -> int:
    """
    Classify one pixel block.

    Args:
        tree: Heap-ordered nodes
        block: 2-D block (indexed [row][col]) or a flat buffer with `stride`
        stride: Row stride of a flat buffer, None for 2-D blocks

    Returns:
        Glyph index of the leaf reached

    Raises:
        FormatError: If the walk leaves the tree or exceeds its depth
    """
    max_steps = tree_depth(tree)
    cur = 0

    for _ in range(max_steps + 1):
        if cur >= len(tree) or tree[cur] is None:
            raise FormatError(f"Tree walk reached empty slot {cur}")

        node = tree[cur]
        if isinstance(node, LeafNode):
            if not 0 <= node.glyph <= MAX_GLYPH_INDEX:
                raise FormatError(f"Leaf {cur} carries glyph {node.glyph}, outside 0..{MAX_GLYPH_INDEX}")
            return node.glyph

        if _pixel(block, node.row, node.col, stride) > node.threshold:
            cur = 2 * cur + 2
        else:
            cur = 2 * cur + 1

    raise FormatError(f"Tree walk exceeded the maximum depth of {max_steps}")


def _tree_arrays(tree: Sequence[Optional[TreeNode]]) -> Tuple[np.ndarray, ...]:
    """Split nodes into parallel arrays: kind (-1 empty, 0 leaf, 1 internal), a, b, c."""
    size = len(tree)
    kind = np.full(size, -1, dtype=np.int8)
    a = np.zeros(size, dtype=np.int64)
    b = np.zeros(size, dtype=np.int64)
    c = np.zeros(size, dtype=np.int64)

    for i, node in enumerate(tree):
        if isinstance(node, InternalNode):
            kind[i], a[i], b[i], c[i] = 1, node.row, node.col, node.threshold
        elif isinstance(node, LeafNode):
            if not 0 <= node.glyph <= MAX_GLYPH_INDEX:
                raise FormatError(f"Leaf {i} carries glyph {node.glyph}, outside 0..{MAX_GLYPH_INDEX}")
            kind[i], a[i] = 0, node.glyph

    return kind, a, b, c


def classify_blocks(tree: Sequence[Optional[TreeNode]], blocks: np.ndarray) -> np.ndarray:
    """
    Classify a stack of blocks.

    Args:
        tree: Heap-ordered nodes
        blocks: K x rows x cols uint8 array

    Returns:
        K glyph indices (uint8)

    Raises:
        FormatError: If any walk leaves the tree or exceeds its depth, or a
            leaf carries a glyph index that does not fit a byte
    """
    blocks = np.asarray(blocks)
    if blocks.ndim != 3:
        raise ValueError(f"blocks must be K x rows x cols, got shape {blocks.shape}")

    count = blocks.shape[0]
    kind, a, b, c = _tree_arrays(tree)
    size = len(kind)

    cur = np.zeros(count, dtype=np.int64)
    result = np.zeros(count, dtype=np.uint8)
    active = np.arange(count)

    for _ in range(tree_depth(tree) + 1):
        if active.size == 0:
            return result

        nodes = cur[active]
        if np.any(nodes >= size) or np.any(kind[nodes] < 0):
            raise FormatError("Tree walk reached an empty slot")

        leaf = kind[nodes] == 0
        result[active[leaf]] = a[nodes[leaf]]

        active = active[~leaf]
        nodes = nodes[~leaf]
        pixels = blocks[active, a[nodes], b[nodes]]
        cur[active] = np.where(pixels > c[nodes], 2 * nodes + 2, 2 * nodes + 1)

    if active.size:
        raise FormatError(f"Tree walk exceeded the maximum depth of {tree_depth(tree)}")
    return result
