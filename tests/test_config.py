import os
import unittest
from unittest.mock import patch

from ascii_mosaic.config import RenderConfig


class TestRenderConfig(unittest.TestCase):

    def test_defaults(self):
        config = RenderConfig()
        self.assertTrue(config.optimize)
        self.assertEqual(config.tiles, (8, 8))
        self.assertEqual(config.clip_limit, 3)
        self.assertIsNone(config.max_blocks)

    def test_validation(self):
        with self.assertRaises(ValueError):
            RenderConfig(tiles=(0, 8))
        with self.assertRaises(ValueError):
            RenderConfig(tiles=(8, 17))
        with self.assertRaises(ValueError):
            RenderConfig(clip_limit=300)
        with self.assertRaises(ValueError):
            RenderConfig(byteorder="middle")

    def test_from_env(self):
        env = {
            "ASCII_MOSAIC_MODEL": "/tmp/art.bin",
            "ASCII_MOSAIC_OPTIMIZE": "false",
            "ASCII_MOSAIC_MAX_BLOCKS": "307200",
        }
        with patch.dict(os.environ, env):
            config = RenderConfig.from_env(tiles=(4, 4))

        self.assertEqual(config.model_path, "/tmp/art.bin")
        self.assertFalse(config.optimize)
        self.assertEqual(config.max_blocks, 307200)
        self.assertEqual(config.tiles, (4, 4))

    def test_from_env_without_variables(self):
        with patch.dict(os.environ, {}, clear=True):
            config = RenderConfig.from_env()
        self.assertEqual(config, RenderConfig())


if __name__ == '__main__':
    unittest.main()
