import unittest

import numpy as np

from ascii_mosaic.errors import CapacityError
from ascii_mosaic.indexer import compute_index_matrix, crop_dimensions, extract_blocks
from ascii_mosaic.model import InternalNode, LeafNode, encode_model, parse_model


def make_model(tree=(InternalNode(0, 0, 127), LeafNode(1), LeafNode(0)), rows=6, cols=10):
    glyphs = np.stack([
        np.full((rows, cols), 255, dtype=np.uint8),
        np.zeros((rows, cols), dtype=np.uint8),
        np.eye(rows, cols, dtype=np.uint8) * 255,
    ])
    return parse_model(encode_model(glyphs, tree))


class TestCropDimensions(unittest.TestCase):

    def test_exact_multiples_are_unchanged(self):
        for width, height in [(640, 480), (10, 6), (0, 0), (1000, 600)]:
            self.assertEqual(crop_dimensions(width, height, 6, 10), (width, height))

    def test_trailing_pixels_dropped(self):
        self.assertEqual(crop_dimensions(645, 480, 6, 10), (640, 480))
        self.assertEqual(crop_dimensions(649, 485, 6, 10), (640, 480))
        self.assertEqual(crop_dimensions(9, 5, 6, 10), (0, 0))


class TestIndexMatrix(unittest.TestCase):

    def test_blocks_in_row_major_order(self):
        image = np.arange(12 * 20, dtype=np.uint8).reshape(12, 20)
        blocks = extract_blocks(image, 6, 10)

        self.assertEqual(blocks.shape, (4, 6, 10))
        np.testing.assert_array_equal(blocks[1], image[0:6, 10:20])
        np.testing.assert_array_equal(blocks[2], image[6:12, 0:10])

    def test_classifies_each_block(self):
        model = make_model()
        image = np.zeros((12, 30), dtype=np.uint8)
        image[0, 10] = 200
        image[6, 20] = 200

        matrix = compute_index_matrix(model, image)
        self.assertEqual(matrix.dtype, np.uint8)
        np.testing.assert_array_equal(matrix, [[1, 0, 1], [1, 1, 0]])

    def test_partial_blocks_are_ignored(self):
        model = make_model()
        image = np.zeros((480, 645), dtype=np.uint8)
        image[:, 640:] = 255

        matrix = compute_index_matrix(model, image)
        self.assertEqual(matrix.shape, (80, 64))
        self.assertTrue(np.all(matrix == 1))

    def test_no_tree_defaults_to_first_glyph(self):
        model = make_model(tree=None)
        image = np.full((24, 40), 255, dtype=np.uint8)

        matrix = compute_index_matrix(model, image)
        self.assertEqual(matrix.shape, (4, 4))
        self.assertTrue(np.all(matrix == 0))

    def test_capacity_exceeded(self):
        model = make_model()
        image = np.zeros((480, 640), dtype=np.uint8)

        with self.assertRaises(CapacityError):
            compute_index_matrix(model, image, max_blocks=80 * 64 - 1)

        matrix = compute_index_matrix(model, image, max_blocks=80 * 64)
        self.assertEqual(matrix.shape, (80, 64))

    def test_image_smaller_than_one_block(self):
        matrix = compute_index_matrix(make_model(), np.zeros((5, 9), dtype=np.uint8))
        self.assertEqual(matrix.shape, (0, 0))

    def test_rejects_multichannel_images(self):
        with self.assertRaises(ValueError):
            compute_index_matrix(make_model(), np.zeros((12, 20, 3), dtype=np.uint8))


if __name__ == '__main__':
    unittest.main()
