#!/usr/bin/env python3
"""
Image-to-ASCII Mosaic Renderer

Renders an image file into ASCII art with the decision-tree model and
prints the text to stdout.

Usage:
    python scripts/cli.py photo.jpg                     # Print ASCII art
    python scripts/cli.py photo.jpg --out art.txt       # Save text
    python scripts/cli.py photo.jpg --mosaic art.png    # Save glyph mosaic
    python scripts/cli.py photo.jpg --width 100         # Resize to 100 columns
"""

import argparse
import os
import sys

from PIL import Image

# Add project to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ascii_mosaic.config import RenderConfig
from ascii_mosaic.errors import AsciiArtError
from ascii_mosaic.exporter import image_to_pixels, save_mosaic
from ascii_mosaic.model import load_builtin_model
from ascii_mosaic.preprocessing import resize_for_blocks
from ascii_mosaic.renderer import AsciiArtRenderer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert an image to ASCII art",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/cli.py photo.jpg
    Render with contrast equalization and print the text

  python scripts/cli.py photo.jpg --no-optimize --html --out art.html
    Skip equalization and save an HTML page
"""
    )

    parser.add_argument("image", help="Input image path")

    parser.add_argument(
        "--model", "-m",
        default=None,
        help="Model blob path (default: built-in model)"
    )

    parser.add_argument(
        "--width", "-w",
        type=int,
        default=None,
        help="Resize to this many characters per line (default: keep image size)"
    )

    parser.add_argument(
        "--no-optimize",
        action="store_true",
        help="Skip CLAHE contrast equalization"
    )

    parser.add_argument(
        "--out", "-o",
        default=None,
        help="Save text output to this file"
    )

    parser.add_argument(
        "--html",
        action="store_true",
        help="Save --out as an HTML page (requires --out)"
    )

    parser.add_argument(
        "--mosaic",
        default=None,
        help="Save the glyph mosaic image to this file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress to stderr"
    )

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.html and not args.out:
        parser.error("--html needs --out")

    config = RenderConfig.from_env()
    if args.no_optimize:
        config.optimize = False

    try:
        model = load_builtin_model(args.model or config.model_path, byteorder=config.byteorder)
    except (OSError, AsciiArtError) as e:
        print(f"❌ Cannot load model: {e}", file=sys.stderr)
        return 1

    renderer = AsciiArtRenderer(model=model, config=config)
    if args.verbose:
        print(f"🔧 {model}", file=sys.stderr)

    try:
        with Image.open(args.image) as image:
            if args.width:
                image = resize_for_blocks(image.convert('L'), args.width, model.block_size)
            pixels = image_to_pixels(image)
    except OSError as e:
        print(f"❌ Cannot load image: {e}", file=sys.stderr)
        return 1

    try:
        result = renderer.render_image(pixels, copy=False)
    except AsciiArtError as e:
        print(f"❌ Render failed: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        print(f"✅ Rendered {result.width}x{result.height} characters "
              f"in {result.metadata['render_time']}", file=sys.stderr)

    if args.out:
        os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
        result.save(args.out, format="html" if args.html else "txt")
        if args.verbose:
            print(f"✅ Saved text to {args.out}", file=sys.stderr)
    else:
        sys.stdout.write(result.text)

    if args.mosaic:
        path = save_mosaic(result.mosaic, args.mosaic)
        if args.verbose:
            print(f"✅ Saved mosaic to {path}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
