"""
Image Preprocessing

Contrast equalization applied before block classification:
- CLAHE (Contrast Limited Adaptive Histogram Equalization) on a tile grid,
  blended bilinearly between tile centres
- Resizing an image to a target text width

The equalizer is not OpenCV's CLAHE. The histogram clip is a single
redistribution pass and the blend uses truncating integer division, which
is what the pretrained decision tree was trained against.
"""

from typing import Optional, Tuple
import numpy as np
from PIL import Image

from .config import MAX_TILE_DIVS


NBINS = 256


def _tile_lut(tile: np.ndarray, clip: int) -> np.ndarray:
    """
    Build the 256-entry remap table for one tile.

    Args:
        tile: Tile pixels (uint8)
        clip: Clip limit in multiples of the uniform bin mass 1/256

    Returns:
        uint8 lookup table
    """
    counts = np.bincount(tile.ravel(), minlength=NBINS)
    step = 1.0 / tile.size

    # Accumulate 1/n per pixel (sequential float sum) rather than count/n
    p = np.zeros(NBINS, dtype=np.float64)
    for k in np.flatnonzero(counts):
        p[k] = np.cumsum(np.full(counts[k], step))[-1]

    # Single clipping pass; excess goes to every bin before the next bin is checked
    limit = clip / NBINS
    for k in range(NBINS):
        if p[k] >= limit:
            d = p[k] - limit
            p[k] = limit
            p += d / NBINS

    cdf = np.cumsum(p)
    return np.minimum((NBINS - 1) * cdf, NBINS - 1).astype(np.uint8)


def _check_grid(di: int, dj: int, clip: int):
    if not (1 <= di <= MAX_TILE_DIVS and 1 <= dj <= MAX_TILE_DIVS):
        raise ValueError(f"Tile grid must be within 1..{MAX_TILE_DIVS} per axis, got {di}x{dj}")
    if not 0 <= clip <= 255:
        raise ValueError(f"Clip limit must be within 0..255, got {clip}")


def tile_lookup_tables(
    image: np.ndarray,
    di: int = 8,
    dj: int = 8,
    clip: int = 3,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute per-tile lookup tables and tile centres.

    Tile i covers rows i*H//di through min((i+1)*H//di, H-1) inclusive, so
    neighbouring tiles share their boundary row (columns likewise).

    Returns:
        Tuple of (di x dj x 256 LUTs, row centres, column centres)
    """
    _check_grid(di, dj, clip)
    height, width = image.shape

    luts = np.zeros((di, dj, NBINS), dtype=np.uint8)
    ics = np.zeros(di, dtype=np.int64)
    jcs = np.zeros(dj, dtype=np.int64)

    for i in range(di):
        i0 = i * height // di
        i1 = min((i + 1) * height // di, height - 1)
        ics[i] = (i0 + i1) // 2
        for j in range(dj):
            j0 = j * width // dj
            j1 = min((j + 1) * width // dj, width - 1)
            jcs[j] = (j0 + j1) // 2
            luts[i, j] = _tile_lut(image[i0:i1 + 1, j0:j1 + 1], clip)

    return luts, ics, jcs


def equalize(
    image: np.ndarray,
    di: int = 8,
    dj: int = 8,
    clip: int = 3,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Apply tiled CLAHE.

    Pixels beyond the outermost tile centres use the nearest tile's table,
    pixels between two centres along one axis blend two tables linearly,
    and pixels inside four centres blend four tables bilinearly. Every pixel
    is written once, so `out` may be `image` itself.

    Args:
        image: H x W uint8 image
        di: Tile rows
        dj: Tile columns
        clip: Histogram clip limit
        out: Destination array (new array if None)

    Returns:
        Equalized image
    """
    image = np.asarray(image)
    if image.ndim != 2 or image.dtype != np.uint8:
        raise ValueError(f"Expected an H x W uint8 image, got {image.dtype} {image.shape}")
    _check_grid(di, dj, clip)

    if out is None:
        out = np.empty_like(image)
    if image.size == 0:
        return out

    height, width = image.shape
    luts, ics, jcs = tile_lookup_tables(image, di, dj, clip)
    src = image.copy() if out is image else image

    def mapped(ti, tj, rs, cs):
        return luts[ti, tj][src[rs, cs]].astype(np.int64)

    top, bottom = slice(0, ics[0]), slice(ics[-1], height)
    left, right = slice(0, jcs[0]), slice(jcs[-1], width)

    # Corners
    out[top, left] = luts[0, 0][src[top, left]]
    out[top, right] = luts[0, dj - 1][src[top, right]]
    out[bottom, left] = luts[di - 1, 0][src[bottom, left]]
    out[bottom, right] = luts[di - 1, dj - 1][src[bottom, right]]

    # Left and right bands
    for k in range(di - 1):
        a, b = ics[k], ics[k + 1]
        if b <= a:
            continue
        rs = slice(a, b)
        i = np.arange(a, b, dtype=np.int64)[:, None]
        for cs, tj in ((left, 0), (right, dj - 1)):
            v0 = mapped(k, tj, rs, cs)
            v1 = mapped(k + 1, tj, rs, cs)
            out[rs, cs] = ((b - i) * v0 + (i - a) * v1) // (b - a)

    # Top and bottom bands
    for k in range(dj - 1):
        a, b = jcs[k], jcs[k + 1]
        if b <= a:
            continue
        cs = slice(a, b)
        j = np.arange(a, b, dtype=np.int64)[None, :]
        for rs, ti in ((top, 0), (bottom, di - 1)):
            v0 = mapped(ti, k, rs, cs)
            v1 = mapped(ti, k + 1, rs, cs)
            out[rs, cs] = ((b - j) * v0 + (j - a) * v1) // (b - a)

    # Interior cells
    for k in range(di - 1):
        ia, ib = ics[k], ics[k + 1]
        if ib <= ia:
            continue
        rs = slice(ia, ib)
        i = np.arange(ia, ib, dtype=np.int64)[:, None]
        for l in range(dj - 1):
            ja, jb = jcs[l], jcs[l + 1]
            if jb <= ja:
                continue
            cs = slice(ja, jb)
            j = np.arange(ja, jb, dtype=np.int64)[None, :]

            v00 = mapped(k, l, rs, cs)
            v01 = mapped(k, l + 1, rs, cs)
            v10 = mapped(k + 1, l, rs, cs)
            v11 = mapped(k + 1, l + 1, rs, cs)

            out[rs, cs] = (
                (ib - i) * (jb - j) * v00
                + (ib - i) * (j - ja) * v01
                + (i - ia) * (jb - j) * v10
                + (i - ia) * (j - ja) * v11
            ) // ((ib - ia) * (jb - ja))

    return out


def resize_for_blocks(
    image: Image.Image,
    char_width: int,
    block_size: Tuple[int, int],
    char_height: Optional[int] = None,
) -> Image.Image:
    """
    Resize an image so it spans `char_width` blocks horizontally.

    Args:
        image: PIL Image to resize
        char_width: Target width in characters
        block_size: Model block size (rows, cols)
        char_height: Target height in characters (keeps aspect ratio if None)

    Returns:
        Resized PIL Image, both sides multiples of the block size
    """
    rows, cols = block_size
    target_width = char_width * cols

    if char_height is None:
        aspect_ratio = image.height / image.width
        char_height = max(1, int(target_width * aspect_ratio / rows))

    return image.resize((target_width, char_height * rows), Image.Resampling.LANCZOS)
