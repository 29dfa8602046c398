"""
Image I/O helpers: load images as 8-bit grayscale pixel buffers and write
mosaic previews back out.
"""

import os
import numpy as np
from PIL import Image


def image_to_pixels(image: Image.Image) -> np.ndarray:
    """Convert a PIL Image to a writable H x W uint8 array."""
    if image.mode != 'L':
        image = image.convert('L')
    return np.array(image, dtype=np.uint8)


def load_grayscale(path: str) -> np.ndarray:
    """
    Load an image file as a single-channel pixel buffer.

    Returns:
        H x W uint8 array
    """
    with Image.open(path) as image:
        return image_to_pixels(image)


def save_mosaic(pixels: np.ndarray, path: str) -> str:
    """
    Save a mosaic pixel buffer as an image.

    Returns the absolute path of the saved file.
    """
    output_path = os.path.abspath(path)
    directory = os.path.dirname(output_path)
    os.makedirs(directory, exist_ok=True)

    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(output_path)
    return output_path
