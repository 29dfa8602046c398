"""
Glyph Code Table and Rasterization

The renderer's output alphabet is fixed: the 95 printable ASCII characters
(0x20-0x7E), index-aligned with the glyph bitmaps stored in a model.

Rasterization turns each character into a block-sized bitmap. It is only
needed when producing a model; rendering uses the bitmaps stored in the
model blob.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple
import numpy as np
from PIL import Image, ImageDraw, ImageFont


# Standard 95 printable ASCII (0x20-0x7E)
GLYPH_CHARS = (
    " !\"#$%&'()*+,-./0123456789:;<=>?"
    "@ABCDEFGHIJKLMNOPQRSTUVWXYZ[\\]^_"
    "`abcdefghijklmnopqrstuvwxyz{|}~"
)

PAPER = 255
INK = 0


def glyph_char(index: int) -> str:
    """Printable character for a glyph index."""
    return GLYPH_CHARS[index]


@dataclass
class GlyphSet:
    """
    Rasterized glyphs for a block size.

    Attributes:
        characters: Characters in glyph-index order
        tile_size: Bitmap size (width, height)
        bitmaps: N x H x W uint8 array, ink = 0 on paper = 255
    """
    characters: str = GLYPH_CHARS
    tile_size: Tuple[int, int] = (10, 16)
    bitmaps: Optional[np.ndarray] = None
    _font: Optional[ImageFont.ImageFont] = field(default=None, repr=False)

    def __post_init__(self):
        if self.bitmaps is None:
            self.bitmaps = np.stack([self._rasterize_char(c) for c in self.characters])

    def _get_font(self, size: int) -> ImageFont.ImageFont:
        """Get a monospace font for rendering."""
        if self._font is None:
            font_names = [
                "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",  # Linux
                "/System/Library/Fonts/Menlo.ttc",  # macOS
                "DejaVuSansMono.ttf",
                "Consolas",  # Windows
            ]
            for font_name in font_names:
                try:
                    self._font = ImageFont.truetype(font_name, size)
                    break
                except (OSError, IOError):
                    continue

            if self._font is None:
                self._font = ImageFont.load_default()

        return self._font

    def _rasterize_char(self, char: str) -> np.ndarray:
        """
        Render a single character, centred, to a block-sized bitmap.

        Returns:
            H x W uint8 array with 0 for ink and 255 for paper
        """
        width, height = self.tile_size

        img = Image.new('L', (width, height), color=PAPER)
        draw = ImageDraw.Draw(img)
        font = self._get_font(max(height - 2, 1))

        bbox = draw.textbbox((0, 0), char, font=font)
        text_width = bbox[2] - bbox[0]
        text_height = bbox[3] - bbox[1]

        x = (width - text_width) // 2 - bbox[0]
        y = (height - text_height) // 2 - bbox[1]

        draw.text((x, y), char, fill=INK, font=font)

        # Binarize so every bitmap is pure ink/paper
        arr = np.array(img)
        return np.where(arr < 128, INK, PAPER).astype(np.uint8)

    def densities(self) -> np.ndarray:
        """Ink coverage (0-1) per glyph."""
        return (self.bitmaps == INK).mean(axis=(1, 2))


def visualize_glyphs(bitmaps: np.ndarray, cols: int = 16) -> Image.Image:
    """
    Create a grid image showing every glyph bitmap of a model.

    Args:
        bitmaps: Sequence of H x W glyph bitmaps
        cols: Number of glyphs per grid row

    Returns:
        PIL Image of the grid
    """
    bitmaps = list(bitmaps)
    if not bitmaps:
        raise ValueError("No glyphs to visualize")

    tile_h, tile_w = bitmaps[0].shape
    rows = (len(bitmaps) + cols - 1) // cols
    padding = 2
    cell_w = tile_w + padding * 2
    cell_h = tile_h + padding * 2

    img = Image.new('L', (cols * cell_w, rows * cell_h), color=200)

    for idx, bitmap in enumerate(bitmaps):
        x = (idx % cols) * cell_w + padding
        y = (idx // cols) * cell_h + padding
        img.paste(Image.fromarray(np.ascontiguousarray(bitmap)), (x, y))

    return img