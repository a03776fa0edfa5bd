import io

import numpy as np
import pytest
from PIL import Image

from qrstyle.encoder import QRCodeEncoder


def make_raster(modules, pitch, margin=4, transparent=False, extra=0):
    """Axis-aligned block raster of ``modules`` (True = dark) inside a light quiet zone.

    ``extra`` light pixels are appended at the right and bottom edges.
    """
    modules = np.asarray(modules, dtype=bool)
    padded = np.pad(modules, margin, constant_values=False)
    pixels = np.kron(padded, np.ones((pitch, pitch), dtype=bool))
    pixels = np.pad(pixels, ((0, extra), (0, extra)), constant_values=False)

    rgba = np.zeros(pixels.shape + (4,), dtype=np.uint8)
    rgba[~pixels] = (255, 255, 255, 0 if transparent else 255)
    rgba[pixels] = (0, 0, 0, 255)
    return Image.fromarray(rgba)


def sample_pattern(seed=7, size=21):
    """Random module pattern whose center row starts dark, light, dark, light."""
    rng = np.random.default_rng(seed)
    modules = rng.random((size, size)) < 0.5
    center = size // 2
    modules[center, :4] = [True, False, True, False]
    return modules


class RecordingEncoder:
    """Encoder double that records its calls and returns a prepared raster."""

    def __init__(self, image=None, error=None):
        self.image = image
        self.error = error
        self.calls = []

    def encode(self, text, version, error_level, pixel_size, margin, colors):
        self.calls.append({
            "text": text, "version": version, "error_level": error_level,
            "pixel_size": pixel_size, "margin": margin, "colors": colors,
        })
        if self.error is not None:
            raise self.error
        if self.image is not None:
            return self.image.copy()
        pitch = pixel_size // 29
        return make_raster(sample_pattern(), pitch=pitch, extra=pixel_size - 29 * pitch)


@pytest.fixture
def pattern():
    return sample_pattern()


@pytest.fixture
def raster(pattern):
    # 21 modules + 2 * 4 margin = 29 modules at 8 px = 232 px
    return make_raster(pattern, pitch=8)


@pytest.fixture
def encoder():
    return QRCodeEncoder()


@pytest.fixture
def recording_encoder():
    return RecordingEncoder()


@pytest.fixture
def logo_png_bytes():
    img = Image.new("RGBA", (32, 32), (220, 20, 20, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
