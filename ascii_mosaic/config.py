"""
Configuration for rendering and model production.

Values can be set directly or read from the environment:
    ASCII_MOSAIC_MODEL       path to a model blob file
    ASCII_MOSAIC_OPTIMIZE    "0"/"false" disables contrast equalization
    ASCII_MOSAIC_MAX_BLOCKS  upper bound on blocks per render call
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import os


MAX_TILE_DIVS = 16


@dataclass
class RenderConfig:
    """Configuration for AsciiArtRenderer."""
    optimize: bool = True              # Run CLAHE before classification
    tiles: Tuple[int, int] = (8, 8)    # Equalization grid (rows, cols), at most 16x16
    clip_limit: int = 3                # Histogram clip, in multiples of the uniform bin mass
    max_blocks: Optional[int] = None   # None = index matrix grows with the image
    byteorder: str = "little"          # Integer byte order of the model blob
    model_path: Optional[str] = None   # Blob file to load instead of the built-in model

    def __post_init__(self):
        di, dj = self.tiles
        if not (1 <= di <= MAX_TILE_DIVS and 1 <= dj <= MAX_TILE_DIVS):
            raise ValueError(f"tiles must be within 1..{MAX_TILE_DIVS}, got {self.tiles}")
        if not 0 <= self.clip_limit <= 255:
            raise ValueError(f"clip_limit must be within 0..255, got {self.clip_limit}")
        if self.max_blocks is not None and self.max_blocks < 0:
            raise ValueError("max_blocks must be non-negative")
        if self.byteorder not in ("little", "big"):
            raise ValueError(f"byteorder must be 'little' or 'big', got {self.byteorder!r}")

    @classmethod
    def from_env(cls, **overrides) -> "RenderConfig":
        """Build a config from ASCII_MOSAIC_* environment variables."""
        values = {}

        model_path = os.getenv("ASCII_MOSAIC_MODEL")
        if model_path:
            values["model_path"] = model_path

        optimize = os.getenv("ASCII_MOSAIC_OPTIMIZE")
        if optimize is not None:
            values["optimize"] = optimize.strip().lower() not in ("0", "false", "no", "off")

        max_blocks = os.getenv("ASCII_MOSAIC_MAX_BLOCKS")
        if max_blocks:
            values["max_blocks"] = int(max_blocks)

        values.update(overrides)
        return cls(**values)


@dataclass
class TrainingConfig:
    """Configuration for producing a model blob from rasterized glyphs."""
    tile_size: Tuple[int, int] = (10, 16)  # Block size (width, height)
    max_depth: int = 10                    # Decision tree depth
    augmentations: int = 24                # Augmented samples per glyph
    random_state: int = 42
