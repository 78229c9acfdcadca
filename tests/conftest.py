"""Shared fixtures: synthetic pixel buffers and image files."""

import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def solid():
    """Build an (h, w, 4) uint8 buffer of a single color."""
    def _solid(rgb, width=4, height=4, alpha=255):
        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        pixels[..., :3] = rgb
        pixels[..., 3] = alpha
        return pixels
    return _solid


@pytest.fixture
def write_image(tmp_path):
    """Write an RGBA array to a PNG in tmp_path and return its path."""
    def _write(name, pixels):
        path = tmp_path / name
        Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(path)
        return path
    return _write
