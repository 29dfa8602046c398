"""
Model Producer

Builds a model blob from scratch:
- Rasterize the 95 printable glyphs at the block size
- Generate augmented block samples per glyph (shifts, ink/paper levels, noise)
- Fit a scikit-learn decision tree on raw block pixels
- Flatten the fitted tree into heap order and serialize it with the glyphs

The resulting blob is what the renderer loads as its built-in model.
"""

from typing import List, Optional, Tuple
import numpy as np
import cv2
from sklearn.tree import DecisionTreeClassifier

from .charsets import GLYPH_CHARS, INK, PAPER, GlyphSet
from .config import TrainingConfig
from .model import AsciiArtModel, InternalNode, LeafNode, TreeNode, encode_model, node_count, parse_model


def augment_glyph(bitmap: np.ndarray, count: int, rng: np.random.RandomState) -> List[np.ndarray]:
    """
    Generate variations of a glyph bitmap as a camera image would show it.

    Applies:
    - One-pixel translations
    - Random ink and paper gray levels
    - Gaussian noise

    Args:
        bitmap: H x W glyph bitmap (ink 0, paper 255)
        count: Number of samples; the first is the clean bitmap
        rng: Random state

    Returns:
        List of H x W uint8 samples
    """
    h, w = bitmap.shape
    samples = [bitmap.copy()]

    for _ in range(count - 1):
        dx, dy = rng.randint(-1, 2, size=2)
        M = np.float32([[1, 0, dx], [0, 1, dy]])
        shifted = cv2.warpAffine(bitmap, M, (w, h), borderValue=PAPER)

        ink = rng.randint(0, 100)
        paper = rng.randint(150, 256)
        toned = np.where(shifted == INK, ink, paper).astype(float)

        sigma = rng.uniform(0, 20)
        noisy = toned + rng.normal(0, sigma, toned.shape)
        samples.append(np.clip(noisy, 0, 255).astype(np.uint8))

    return samples


def generate_training_data(
    bitmaps: np.ndarray,
    augmentations: int,
    random_state: int = 42,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the training set.

    Returns:
        Tuple of (K x rows*cols pixel features, K glyph labels)
    """
    rng = np.random.RandomState(random_state)
    features = []
    labels = []

    for idx, bitmap in enumerate(bitmaps):
        for sample in augment_glyph(bitmap, augmentations, rng):
            features.append(sample.ravel())
            labels.append(idx)

    return np.array(features, dtype=np.uint8), np.array(labels)


def flatten_tree(estimator: DecisionTreeClassifier, cols: int) -> Tuple[Optional[TreeNode], ...]:
    """
    Convert a fitted scikit-learn tree into heap-ordered nodes.

    scikit-learn sends `x <= t` left; for integer pixels that is the same as
    `not x > floor(t)`, so thresholds are floored.
    """
    t = estimator.tree_
    nodes: List[Optional[TreeNode]] = [None] * node_count(t.max_depth)

    stack = [(0, 0)]
    while stack:
        sk_idx, heap_idx = stack.pop()
        left = t.children_left[sk_idx]

        if left == -1:
            class_pos = int(np.argmax(t.value[sk_idx][0]))
            nodes[heap_idx] = LeafNode(int(estimator.classes_[class_pos]))
            continue

        feature = int(t.feature[sk_idx])
        threshold = int(np.clip(np.floor(t.threshold[sk_idx]), 0, 255))
        nodes[heap_idx] = InternalNode(feature // cols, feature % cols, threshold)

        stack.append((left, 2 * heap_idx + 1))
        stack.append((t.children_right[sk_idx], 2 * heap_idx + 2))

    return tuple(nodes)


def produce_model(config: Optional[TrainingConfig] = None, verbose: bool = False) -> AsciiArtModel:
    """
    Train a decision tree on rasterized glyphs and pack it as a model.

    Args:
        config: Training configuration
        verbose: Print training progress

    Returns:
        Parsed AsciiArtModel built from the encoded blob
    """
    config = config or TrainingConfig()
    glyph_set = GlyphSet(characters=GLYPH_CHARS, tile_size=config.tile_size)
    bitmaps = glyph_set.bitmaps
    _, rows, cols = bitmaps.shape

    if verbose:
        print(f"Generating training data ({len(bitmaps)} glyphs, {rows}x{cols} blocks)...")

    X, y = generate_training_data(bitmaps, config.augmentations, config.random_state)

    if verbose:
        print(f"Training decision tree (max depth {config.max_depth}) on {len(X)} samples...")

    estimator = DecisionTreeClassifier(max_depth=config.max_depth, random_state=config.random_state)
    estimator.fit(X, y)

    if verbose:
        print(f"Training complete. Training accuracy: {estimator.score(X, y):.2%}")

    blob = encode_model(bitmaps, flatten_tree(estimator, cols))
    return parse_model(blob)


def export_model(path: str, config: Optional[TrainingConfig] = None, verbose: bool = False) -> AsciiArtModel:
    """Produce a model and write its blob to `path`."""
    model = produce_model(config, verbose=verbose)
    model.save(path)
    if verbose:
        print(f"Saved {model} to {path}")
    return model
