"""
Pytest fixtures for FrameStag tests
"""

import io

import numpy as np
import PIL.Image
import pytest

from framestag import SourceImage

RED = (255, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def _solid(width: int, height: int, color=RED) -> PIL.Image.Image:
    data = np.empty((height, width, 4), dtype=np.uint8)
    data[...] = color
    return PIL.Image.fromarray(data, "RGBA")


@pytest.fixture
def red_landscape() -> SourceImage:
    """A solid red 2000x1000 source image."""
    return SourceImage(_solid(2000, 1000), name="landscape.png")


@pytest.fixture
def red_square() -> SourceImage:
    """A solid red 100x100 source image."""
    return SourceImage(_solid(100, 100), name="square.png")


@pytest.fixture
def noise_image() -> SourceImage:
    """An opaque 64x48 image of random pixels (fixed seed)."""
    rng = np.random.default_rng(42)
    data = rng.integers(0, 256, size=(48, 64, 4), dtype=np.uint8)
    data[..., 3] = 255
    return SourceImage(PIL.Image.fromarray(data, "RGBA"), name="noise.png")


@pytest.fixture
def png_bytes():
    """
    Returns a function encoding a Pillow image or a SourceImage as PNG.
    """

    def encode(image) -> bytes:
        if isinstance(image, SourceImage):
            image = image.image
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    return encode


@pytest.fixture
def small_png(png_bytes) -> bytes:
    """A 40x30 blue PNG file."""
    return png_bytes(_solid(40, 30, (0, 0, 255, 255)))


@pytest.fixture
def decode():
    """
    Returns a function decoding encoded image bytes into an RGBA numpy array.
    """

    def decode_pixels(data: bytes) -> np.ndarray:
        with PIL.Image.open(io.BytesIO(data)) as image:
            return np.asarray(image.convert("RGBA")).copy()

    return decode_pixels
