"""
Block Indexer

Scans an image in block-sized strides and classifies every block, producing
the index matrix (one glyph index per block, row-major). The image is
cropped to the largest multiple of the block size; trailing partial rows
and columns are dropped.
"""

from typing import Optional, Tuple
import numpy as np

from .classifier import classify_blocks
from .errors import CapacityError
from .model import AsciiArtModel


def crop_dimensions(width: int, height: int, rows: int, cols: int) -> Tuple[int, int]:
    """Largest (width, height) that is a multiple of the block size."""
    return (width // cols) * cols, (height // rows) * rows


def extract_blocks(pixels: np.ndarray, rows: int, cols: int) -> np.ndarray:
    """
    Split a cropped image into blocks.

    Returns:
        (H/rows * W/cols) x rows x cols view, blocks in row-major order
    """
    height, width = pixels.shape
    grid = pixels.reshape(height // rows, rows, width // cols, cols)
    return grid.transpose(0, 2, 1, 3).reshape(-1, rows, cols)


def compute_index_matrix(
    model: AsciiArtModel,
    pixels: np.ndarray,
    max_blocks: Optional[int] = None,
) -> np.ndarray:
    """
    Classify every block of an image.

    Args:
        model: Parsed model
        pixels: H x W uint8 image (cropped internally)
        max_blocks: Capacity of the index matrix, None for unbounded

    Returns:
        (H // rows) x (W // cols) uint8 index matrix

    Raises:
        CapacityError: If the image has more blocks than `max_blocks`
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 2:
        raise ValueError(f"Expected a single-channel H x W image, got shape {pixels.shape}")

    rows, cols = model.block_size
    height, width = pixels.shape
    crop_w, crop_h = crop_dimensions(width, height, rows, cols)
    grid_shape = (crop_h // rows, crop_w // cols)

    n_blocks = grid_shape[0] * grid_shape[1]
    if max_blocks is not None and n_blocks > max_blocks:
        raise CapacityError(
            f"Image of {width}x{height} has {n_blocks} blocks, index matrix holds {max_blocks}"
        )

    if model.tree is None or n_blocks == 0:
        return np.zeros(grid_shape, dtype=np.uint8)

    blocks = extract_blocks(pixels[:crop_h, :crop_w], rows, cols)
    return classify_blocks(model.tree, blocks).reshape(grid_shape)
