import os
import tempfile
import unittest

import numpy as np

from ascii_mosaic.charsets import GLYPH_CHARS, INK, PAPER, GlyphSet
from ascii_mosaic.classifier import classify_blocks
from ascii_mosaic.config import RenderConfig, TrainingConfig
from ascii_mosaic.model import LeafNode, load_model
from ascii_mosaic.renderer import AsciiArtRenderer
from ascii_mosaic.training import augment_glyph, export_model, generate_training_data, produce_model


SMALL = TrainingConfig(tile_size=(8, 12), max_depth=6, augmentations=4, random_state=7)


class TestGlyphRasterization(unittest.TestCase):

    def test_bitmaps_are_binary_and_sized(self):
        glyphs = GlyphSet(tile_size=(8, 12))

        self.assertEqual(glyphs.bitmaps.shape, (95, 12, 8))
        self.assertTrue(np.all(np.isin(glyphs.bitmaps, [INK, PAPER])))
        # Space carries no ink, '@' carries some
        self.assertEqual(glyphs.densities()[0], 0.0)
        self.assertGreater(glyphs.densities()[GLYPH_CHARS.index('@')], 0.0)


class TestTrainingData(unittest.TestCase):

    def test_augmentations(self):
        bitmap = np.full((12, 8), PAPER, dtype=np.uint8)
        bitmap[2:10, 3:5] = INK
        samples = augment_glyph(bitmap, 5, np.random.RandomState(0))

        self.assertEqual(len(samples), 5)
        np.testing.assert_array_equal(samples[0], bitmap)
        for sample in samples:
            self.assertEqual(sample.shape, (12, 8))
            self.assertEqual(sample.dtype, np.uint8)

    def test_dataset_shape(self):
        bitmaps = np.full((3, 4, 5), PAPER, dtype=np.uint8)
        X, y = generate_training_data(bitmaps, augmentations=6)

        self.assertEqual(X.shape, (18, 20))
        np.testing.assert_array_equal(np.bincount(y), [6, 6, 6])


class TestProduceModel(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.model = produce_model(SMALL)

    def test_model_layout(self):
        self.assertEqual(self.model.n_glyphs, 95)
        self.assertEqual(self.model.block_size, (12, 8))
        self.assertLessEqual(self.model.depth, 6)
        self.assertIsNotNone(self.model.tree)

        leaves = [node.glyph for node in self.model.tree if isinstance(node, LeafNode)]
        self.assertTrue(all(0 <= g < 95 for g in leaves))

    def test_classifies_its_own_glyphs(self):
        result = classify_blocks(self.model.tree, self.model.glyphs)
        self.assertEqual(result.shape, (95,))
        self.assertTrue(np.all(result < 95))

    def test_export_and_render(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "art.bin")
            export_model(path, SMALL)
            loaded = load_model(path)

        self.assertEqual(loaded.to_bytes(), self.model.to_bytes())

        renderer = AsciiArtRenderer(model=loaded, config=RenderConfig())
        rng = np.random.RandomState(1)
        image = rng.randint(0, 256, size=(50, 83)).astype(np.uint8)
        result = renderer.render_image(image)

        self.assertEqual(result.index_matrix.shape, (4, 10))
        self.assertEqual(len(result.text), renderer.text_buffer_size(83, 50))
        self.assertTrue(set(result.text) <= set(GLYPH_CHARS + '\n'))


if __name__ == '__main__':
    unittest.main()
