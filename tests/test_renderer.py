import os
import tempfile
import unittest
from unittest.mock import patch

import numpy as np
from PIL import Image

from ascii_mosaic import renderer as art
from ascii_mosaic.config import RenderConfig
from ascii_mosaic.errors import CallerContractError, CapacityError
from ascii_mosaic.charsets import GLYPH_CHARS
from ascii_mosaic.model import InternalNode, LeafNode, _trained_builtin_model, encode_model, parse_model
from ascii_mosaic.renderer import AsciiArtRenderer


def make_model(rows=6, cols=10):
    """Three glyphs: white (' '), black ('!'), diagonal ('"'); dark blocks map to '!'."""
    glyphs = np.stack([
        np.full((rows, cols), 255, dtype=np.uint8),
        np.zeros((rows, cols), dtype=np.uint8),
        np.eye(rows, cols, dtype=np.uint8) * 255,
    ])
    tree = (InternalNode(0, 0, 127), LeafNode(1), LeafNode(0))
    return parse_model(encode_model(glyphs, tree))


def half_dark_image(width=645, height=480, split=320):
    image = np.full((height, width), 255, dtype=np.uint8)
    image[:, :split] = 0
    image[:, 640:] = 77
    return image


class TestTextBufferSize(unittest.TestCase):

    def test_640x480_with_6x10_blocks(self):
        renderer = AsciiArtRenderer(model=make_model())
        self.assertEqual(art.required_text_buffer_size(renderer, 640, 480), 5200)
        self.assertEqual(renderer.text_buffer_size(645, 485), 5200)
        self.assertEqual(renderer.text_buffer_size(9, 5), 0)


class TestBufferRender(unittest.TestCase):

    def setUp(self):
        self.renderer = AsciiArtRenderer(model=make_model(), config=RenderConfig(optimize=False))

    def test_crop_and_restore_dimensions(self):
        image = half_dark_image()
        pixels = bytearray(image.tobytes())
        text = bytearray(self.renderer.text_buffer_size(645, 480))

        width, height = art.render(self.renderer, pixels, 645, 480, text, optimize=False)
        self.assertEqual((width, height), (645, 480))

        expected_line = b"!" * 32 + b" " * 32 + b"\n"
        self.assertEqual(bytes(text), expected_line * 80)

        mosaic = np.frombuffer(bytes(pixels), dtype=np.uint8).reshape(480, 645)
        self.assertTrue(np.all(mosaic[:, :320] == 0))
        self.assertTrue(np.all(mosaic[:, 320:640] == 255))
        # Trailing columns are not part of any block
        self.assertTrue(np.all(mosaic[:, 640:] == 77))

    def test_numpy_buffer_in_place(self):
        image = half_dark_image(640, 480)
        self.renderer.render(image, 640, 480)
        self.assertTrue(np.all(image[:, :320] == 0))
        self.assertTrue(np.all(image[:, 320:] == 255))

    def test_glyph_pattern_written(self):
        model = make_model()
        # Send every block to the diagonal glyph
        glyphs = np.array(model.glyphs)
        blob = encode_model(glyphs, (LeafNode(2),))
        renderer = AsciiArtRenderer(model=parse_model(blob), config=RenderConfig(optimize=False))

        image = np.full((12, 20), 40, dtype=np.uint8)
        text = bytearray(renderer.text_buffer_size(20, 12))
        renderer.render(image, 20, 12, text)

        self.assertEqual(bytes(text), b'""\n""\n')
        np.testing.assert_array_equal(image[6:12, 10:20], glyphs[2])

    def test_without_text_buffer(self):
        pixels = bytearray(half_dark_image(20, 6).tobytes())
        self.assertEqual(self.renderer.render(pixels, 20, 6), (20, 6))
        self.assertEqual(pixels[0], 0)

    def test_undersized_text_buffer(self):
        image = half_dark_image()
        pixels = bytearray(image.tobytes())
        text = bytearray(5199)

        with self.assertRaises(CallerContractError):
            self.renderer.render(pixels, 645, 480, text)
        # Nothing was touched
        self.assertEqual(bytes(pixels), image.tobytes())
        self.assertEqual(bytes(text), bytes(5199))

    def test_undersized_pixel_buffer(self):
        with self.assertRaises(CallerContractError):
            self.renderer.render(bytearray(100), 20, 6)

    def test_read_only_buffers(self):
        with self.assertRaises(CallerContractError):
            self.renderer.render(bytes(120), 20, 6)
        with self.assertRaises(CallerContractError):
            self.renderer.render(bytearray(120), 20, 6, text_buffer=bytes(10))

    def test_repeat_render_is_deterministic(self):
        rng = np.random.RandomState(0)
        image = rng.randint(0, 256, size=(60, 100)).astype(np.uint8)

        first = self.renderer.render_image(image, optimize=False)
        second = self.renderer.render_image(image, optimize=False)

        self.assertEqual(first.text, second.text)
        np.testing.assert_array_equal(first.index_matrix, second.index_matrix)

    def test_optimize_equalizes_first(self):
        image = np.full((12, 20), 100, dtype=np.uint8)
        # A flat tile maps 100 to about 102, still below the 127 threshold
        plain = self.renderer.render_image(image, optimize=False)
        tuned = self.renderer.render_image(image, optimize=True)

        self.assertEqual(plain.text, "!!\n!!\n")
        self.assertEqual(tuned.text, "!!\n!!\n")

    def test_capacity_error_leaves_renderer_usable(self):
        renderer = AsciiArtRenderer(model=make_model(), config=RenderConfig(optimize=True, max_blocks=10))

        image = half_dark_image()
        pixels = bytearray(image.tobytes())
        with self.assertRaises(CapacityError):
            renderer.render(pixels, 645, 480)
        self.assertEqual(bytes(pixels), image.tobytes())

        image = np.zeros((6, 20), dtype=np.uint8)
        self.assertEqual(renderer.render(image, 20, 6), (20, 6))


class TestRenderImage(unittest.TestCase):

    def setUp(self):
        self.renderer = AsciiArtRenderer(model=make_model(), config=RenderConfig(optimize=False))

    def test_result_contents(self):
        image = half_dark_image()
        result = self.renderer.render_image(image)

        self.assertEqual(result.width, 64)
        self.assertEqual(result.height, 80)
        self.assertEqual(result.index_matrix.shape, (80, 64))
        self.assertEqual(result.mosaic.shape, (480, 645))
        self.assertEqual(result.metadata['block_size'], "6x10")
        # Input copied by default
        self.assertEqual(int(image[0, 400]), 255)
        self.assertEqual(int(image[0, 642]), 77)

    def test_pil_input(self):
        image = Image.fromarray(half_dark_image(40, 12, split=20)).convert('RGB')
        result = self.renderer.render_image(image)
        self.assertEqual(result.text, "!!  \n!!  \n")

    def test_render_file_and_save(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "input.png")
            Image.fromarray(half_dark_image(40, 12, split=20)).save(path)

            result = self.renderer.render_file(path)
            self.assertEqual(result.metadata['source'], path)

            txt_path = os.path.join(tmp, "art.txt")
            html_path = os.path.join(tmp, "art.html")
            png_path = os.path.join(tmp, "art.png")
            result.save(txt_path)
            result.save(html_path)
            result.save(png_path)

            with open(txt_path, encoding='utf-8') as f:
                self.assertEqual(f.read(), "!!  \n!!  \n")
            with open(html_path, encoding='utf-8') as f:
                self.assertIn("<pre>!!  \n!!  \n</pre>", f.read())
            with Image.open(png_path) as mosaic:
                self.assertEqual(mosaic.size, (40, 12))

        stats = result.get_stats()
        self.assertEqual(stats['total_characters'], 8)
        self.assertEqual(stats['unique_characters'], 2)



class TestInit(unittest.TestCase):

    def setUp(self):
        _trained_builtin_model.cache_clear()
        self.addCleanup(_trained_builtin_model.cache_clear)

    def test_trains_builtin_model_once_and_renders(self):
        with tempfile.TemporaryDirectory() as tmp:
            missing = os.path.join(tmp, "ascii_art.bin")
            with patch.dict(os.environ), patch("ascii_mosaic.model.BUILTIN_MODEL_PATH", missing):
                os.environ.pop("ASCII_MOSAIC_MODEL", None)

                with self.assertWarns(UserWarning) as ctx:
                    renderer = art.init()
                second = art.init()

        self.assertIn(missing, str(ctx.warning))
        self.assertIs(second.model, renderer.model)
        self.assertEqual(renderer.block_size, (16, 10))

        size = art.required_text_buffer_size(renderer, 645, 480)
        self.assertEqual(size, 30 * 65)

        pixels = bytearray(half_dark_image().tobytes())
        text = bytearray(size)
        self.assertEqual(art.render(renderer, pixels, 645, 480, text), (645, 480))

        lines = bytes(text).split(b"\n")
        self.assertEqual(len(lines), 31)
        self.assertEqual(lines[-1], b"")
        for line in lines[:-1]:
            self.assertEqual(len(line), 64)
            self.assertTrue(set(line.decode("ascii")) <= set(GLYPH_CHARS))


if __name__ == '__main__':
    unittest.main()
