"""
ASCII Mosaic Renderer

Composes contrast equalization, block indexing and glyph substitution:

1. Optionally equalize the whole image in place (CLAHE)
2. Crop to block-size multiples
3. Classify every block into a glyph index
4. Emit one character per block (newline after each block row) and
   overwrite each block with its glyph bitmap

Two entry points are provided: the buffer API (`init`,
`required_text_buffer_size`, `render`) for callers that own raw pixel and
text buffers, and `AsciiArtRenderer.render_image` for numpy/PIL users.

Example:
    >>> renderer = init()
    >>> result = renderer.render_file("photo.jpg")
    >>> result.display()
"""

from typing import Optional, Tuple, Union
import time
import numpy as np
from PIL import Image

from .charsets import GLYPH_CHARS
from .config import RenderConfig
from .errors import CallerContractError, CapacityError
from .exporter import image_to_pixels, load_grayscale
from .indexer import compute_index_matrix, crop_dimensions
from .model import AsciiArtModel, load_builtin_model
from .preprocessing import equalize
from .result import ASCIIResult, create_result


CHAR_CODES = np.frombuffer(GLYPH_CHARS.encode('ascii'), dtype=np.uint8)
NEWLINE = ord('\n')


def _writable_bytes(buffer, what: str) -> np.ndarray:
    """Flat writable uint8 view of a caller buffer."""
    if isinstance(buffer, np.ndarray):
        arr = buffer
    else:
        arr = np.frombuffer(buffer, dtype=np.uint8)

    if arr.dtype != np.uint8:
        raise CallerContractError(f"{what} must hold uint8 values, got {arr.dtype}")
    if not arr.flags.writeable:
        raise CallerContractError(f"{what} is read-only")
    if not arr.flags.c_contiguous:
        raise CallerContractError(f"{what} must be C-contiguous")
    return arr.reshape(-1)


class AsciiArtRenderer:
    """
    Renders grayscale images into ASCII mosaics with a decision-tree model.

    The model is read-only and may be shared between renderers and threads;
    all scratch state (index matrix, lookup tables) is local to each call.
    """

    def __init__(
        self,
        model: Optional[AsciiArtModel] = None,
        config: Optional[RenderConfig] = None,
    ):
        """
        Initialize the renderer.

        Args:
            model: Parsed model (default: built-in model, or config.model_path)
            config: Render configuration (default: RenderConfig())
        """
        self.config = config or RenderConfig()
        self.model = model or load_builtin_model(self.config.model_path, byteorder=self.config.byteorder)

    @property
    def block_size(self) -> Tuple[int, int]:
        return self.model.block_size

    def text_buffer_size(self, width: int, height: int) -> int:
        """Bytes needed for the text of a width x height image, newlines included."""
        rows, cols = self.model.block_size
        return (height // rows) * (width // cols + 1)

    def _render_pixels(self, pixels: np.ndarray, optimize: bool) -> Tuple[np.ndarray, bytes]:
        """Equalize, index and paint glyphs into `pixels` (H x W) in place."""
        height, width = pixels.shape
        rows, cols = self.model.block_size
        crop_w, crop_h = crop_dimensions(width, height, rows, cols)

        max_blocks = self.config.max_blocks
        if max_blocks is not None and (crop_h // rows) * (crop_w // cols) > max_blocks:
            raise CapacityError(
                f"Image of {width}x{height} has {(crop_h // rows) * (crop_w // cols)} blocks, "
                f"index matrix holds {max_blocks}"
            )

        if optimize:
            di, dj = self.config.tiles
            equalize(pixels, di, dj, self.config.clip_limit, out=pixels)

        matrix = compute_index_matrix(self.model, pixels)
        grid_rows, grid_cols = matrix.shape

        tiles = self.model.glyphs[matrix]
        pixels[:crop_h, :crop_w] = tiles.transpose(0, 2, 1, 3).reshape(crop_h, crop_w)

        codes = np.empty((grid_rows, grid_cols + 1), dtype=np.uint8)
        codes[:, :grid_cols] = CHAR_CODES[matrix]
        codes[:, grid_cols] = NEWLINE

        return matrix, codes.tobytes()

    def render(
        self,
        pixels,
        width: int,
        height: int,
        text_buffer=None,
        optimize: Optional[bool] = None,
    ) -> Tuple[int, int]:
        """
        Render a raw pixel buffer in place.

        Only the block-aligned top-left region is overwritten with glyphs;
        trailing partial rows and columns keep their (possibly equalized)
        pixels.

        Args:
            pixels: Writable row-major buffer of at least width*height bytes
            width: Image width in pixels
            height: Image height in pixels
            text_buffer: Optional writable buffer receiving the text; must hold
                text_buffer_size(width, height) bytes
            optimize: Run CLAHE first (default: config.optimize)

        Returns:
            The original (width, height)

        Raises:
            CallerContractError: If a buffer is too small or not writable
            CapacityError: If the image exceeds config.max_blocks blocks
            FormatError: If the model tree is malformed
        """
        if width < 0 or height < 0:
            raise ValueError(f"Invalid image size {width}x{height}")

        flat = _writable_bytes(pixels, "Pixel buffer")
        if flat.size < width * height:
            raise CallerContractError(
                f"Pixel buffer holds {flat.size} bytes, a {width}x{height} image needs {width * height}"
            )

        text_view = None
        if text_buffer is not None:
            text_view = _writable_bytes(text_buffer, "Text buffer")
            required = self.text_buffer_size(width, height)
            if text_view.size < required:
                raise CallerContractError(
                    f"Text buffer holds {text_view.size} bytes, need "
                    f"(height / rows) * (width / cols + 1) = {required}"
                )

        image = flat[:width * height].reshape(height, width)
        if optimize is None:
            optimize = self.config.optimize

        _, text = self._render_pixels(image, optimize)

        if text_view is not None:
            text_view[:len(text)] = np.frombuffer(text, dtype=np.uint8)

        return width, height

    def render_image(
        self,
        image: Union[np.ndarray, Image.Image],
        optimize: Optional[bool] = None,
        copy: bool = True,
    ) -> ASCIIResult:
        """
        Render an image into an ASCIIResult.

        Args:
            image: H x W uint8 array or PIL Image
            optimize: Run CLAHE first (default: config.optimize)
            copy: Work on a copy; False mutates a uint8 array in place

        Returns:
            ASCIIResult with text, index matrix and mosaic pixels
        """
        if isinstance(image, Image.Image):
            pixels = image_to_pixels(image)
        else:
            pixels = np.asarray(image)
            if pixels.ndim != 2:
                raise ValueError(f"Expected a single-channel H x W image, got shape {pixels.shape}")
            if copy or pixels.dtype != np.uint8 or not pixels.flags.writeable:
                pixels = np.array(pixels, dtype=np.uint8)

        if optimize is None:
            optimize = self.config.optimize

        start = time.time()
        matrix, text = self._render_pixels(pixels, optimize)
        elapsed = time.time() - start

        return create_result(
            text=text.decode('ascii'),
            index_matrix=matrix,
            mosaic=pixels,
            block_size=self.model.block_size,
            optimize=optimize,
            render_time=f"{elapsed:.3f}s",
        )

    def render_file(self, path: str, optimize: Optional[bool] = None) -> ASCIIResult:
        """Load an image from disk and render it."""
        result = self.render_image(load_grayscale(path), optimize=optimize, copy=False)
        result.metadata['source'] = path
        return result


def init(config: Optional[RenderConfig] = None) -> AsciiArtRenderer:
    """Create a renderer holding the built-in model."""
    return AsciiArtRenderer(config=config)


def required_text_buffer_size(renderer: AsciiArtRenderer, width: int, height: int) -> int:
    """(height / rows) * (width / cols + 1) bytes, newlines included."""
    return renderer.text_buffer_size(width, height)


def render(
    renderer: AsciiArtRenderer,
    pixels,
    width: int,
    height: int,
    text_buffer=None,
    optimize: bool = True,
) -> Tuple[int, int]:
    """Render a raw pixel buffer in place; see AsciiArtRenderer.render."""
    return renderer.render(pixels, width, height, text_buffer=text_buffer, optimize=optimize)
