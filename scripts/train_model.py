#!/usr/bin/env python3
"""
Train and export a model blob.

Rasterizes the 95 printable glyphs, fits a decision tree on augmented
glyph blocks and writes the blob the renderer loads.

Usage:
    python scripts/train_model.py                           # Built-in model location
    python scripts/train_model.py models/art.bin --depth 12
    python scripts/train_model.py art.bin --tile-width 8 --tile-height 12
"""

import argparse
import os
import sys

# Add project to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ascii_mosaic.charsets import visualize_glyphs
from ascii_mosaic.config import TrainingConfig
from ascii_mosaic.model import BUILTIN_MODEL_PATH
from ascii_mosaic.training import export_model


def main(argv=None) -> int:
    defaults = TrainingConfig()

    parser = argparse.ArgumentParser(description="Train a decision-tree ASCII art model")
    parser.add_argument("output", nargs="?", default=BUILTIN_MODEL_PATH,
                        help=f"Output blob path (default: {BUILTIN_MODEL_PATH})")
    parser.add_argument("--depth", type=int, default=defaults.max_depth,
                        help=f"Decision tree depth (default: {defaults.max_depth})")
    parser.add_argument("--tile-width", type=int, default=defaults.tile_size[0],
                        help=f"Block width in pixels (default: {defaults.tile_size[0]})")
    parser.add_argument("--tile-height", type=int, default=defaults.tile_size[1],
                        help=f"Block height in pixels (default: {defaults.tile_size[1]})")
    parser.add_argument("--augmentations", type=int, default=defaults.augmentations,
                        help=f"Samples per glyph (default: {defaults.augmentations})")
    parser.add_argument("--seed", type=int, default=defaults.random_state,
                        help="Random seed for reproducibility")
    parser.add_argument("--preview", default=None,
                        help="Also save a grid image of the glyph bitmaps")
    args = parser.parse_args(argv)

    config = TrainingConfig(
        tile_size=(args.tile_width, args.tile_height),
        max_depth=args.depth,
        augmentations=args.augmentations,
        random_state=args.seed,
    )

    print("🚀 Training model...")
    model = export_model(args.output, config, verbose=True)

    if args.preview:
        visualize_glyphs(model.glyphs).save(args.preview)
        print(f"✅ Saved glyph preview to {args.preview}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
