"""Shared test fixtures for product search tests."""

import cv2
import numpy as np
import pytest

from clip_search.config import EMBEDDING_DIM
from clip_search.inference import InferenceAdapter
from clip_search.store import EmbeddingStore


def unit(*components):
    """Unit vector whose leading components are `components`."""
    v = np.zeros(EMBEDDING_DIM, dtype=np.float32)
    v[:len(components)] = components
    return v / np.linalg.norm(v)


def encode_png(image_rgb: np.ndarray) -> bytes:
    if image_rgb.ndim == 3 and image_rgb.shape[2] == 3:
        image_rgb = cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR)
    ok, buf = cv2.imencode(".png", image_rgb)
    assert ok
    return buf.tobytes()


class FixedAdapter(InferenceAdapter):
    """Returns the same raw vector for every tensor."""

    def __init__(self, vector):
        self.vector = np.asarray(vector, dtype=np.float32)
        self.calls = 0

    def embed(self, tensor):
        self.calls += 1
        return self.vector.copy()


class MeanColorAdapter(InferenceAdapter):
    """Deterministic toy model: embedding built from per-channel means."""

    def embed(self, tensor):
        v = np.zeros(EMBEDDING_DIM, dtype=np.float32)
        v[:3] = tensor.mean(axis=(1, 2))
        v[3] = 4.0
        return v


@pytest.fixture
def abc_metadata():
    return [
        [1, "item-a", "Item A", "https://cdn.example.com/a.jpg"],
        [2, "item-b", "Item B", "https://cdn.example.com/b.jpg"],
        [3, "item-c", "Item C", "https://cdn.example.com/c.jpg"],
    ]


@pytest.fixture
def abc_vectors():
    """A=[1,0,...], B=[0,1,...], C=[0.6,0.8,...], padded to EMBEDDING_DIM."""
    return np.vstack([unit(1, 0), unit(0, 1), unit(0.6, 0.8)])


@pytest.fixture
def abc_store(abc_metadata, abc_vectors):
    return EmbeddingStore.load(abc_metadata, abc_vectors.astype("<f2").tobytes())


@pytest.fixture
def random_store():
    """50 random unit vectors with generated metadata."""
    rng = np.random.RandomState(7)
    vectors = rng.normal(size=(50, EMBEDDING_DIM)).astype(np.float32)
    vectors /= np.linalg.norm(vectors, axis=1, keepdims=True)
    metadata = [[i, f"p-{i}", f"Product {i}", f"https://cdn.example.com/{i}.jpg"]
                for i in range(50)]
    return EmbeddingStore.load(metadata, vectors.astype("<f2").tobytes())


@pytest.fixture
def fixed_adapter():
    return FixedAdapter(unit(1, 0) * 5.0)


@pytest.fixture
def mean_color_adapter():
    return MeanColorAdapter()


@pytest.fixture
def red_square_image():
    """Generate a 200x200 red square on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [200, 30, 30]
    return img


@pytest.fixture
def blue_circle_image():
    """Generate a 200x200 blue circle on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    cv2.circle(img, (100, 100), 60, (30, 30, 200), -1)
    return img


@pytest.fixture
def noise_image():
    """Generate a 300x200 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (200, 300, 3), dtype=np.uint8)


@pytest.fixture
def red_square_png(red_square_image):
    return encode_png(red_square_image)


@pytest.fixture
def blue_circle_png(blue_circle_image):
    return encode_png(blue_circle_image)


@pytest.fixture
def noise_png(noise_image):
    return encode_png(noise_image)
