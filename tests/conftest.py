import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def rgb_2x2():
    return np.array([0, 0, 0, 255, 255, 255, 10, 20, 30, 40, 50, 60],
                    dtype=np.uint8).reshape(2, 2, 3)


@pytest.fixture
def random_image():
    rng = np.random.default_rng(1234)

    def make(height, width, channels):
        return rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)

    return make


def save_png(path, pixels):
    modes = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}
    height, width, channels = pixels.shape
    Image.frombytes(modes[channels], (width, height), pixels.tobytes()).save(path, format="PNG")
    return path


def load_pixels(path, formats=None):
    with Image.open(path, formats=formats) as img:
        pixels = np.asarray(img)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    return pixels
