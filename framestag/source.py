"""
Decoded source images.

A :class:`SourceImage` is decoded once per uploaded file and is read-only
while rendering. The interactive path builds it directly from the decoded
image, the background path rebuilds it from a raw RGBA :class:`PixelBuffer`.
Both yield the same pixels and therefore the same render.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import Any

import filetype
import PIL.Image
from PIL import ImageOps

from .exceptions import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PixelBuffer:
    """Raw, straight alpha RGBA pixels.

    :param data: width * height * 4 bytes, row major
    :param width: Width in pixels
    :param height: Height in pixels
    """
    data: bytes
    width: int
    height: int

    @property
    def expected_size(self) -> int:
        return self.width * self.height * 4

    def to_dict(self) -> dict[str, Any]:
        """Message representation (``imageData``)."""
        return {"data": self.data, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PixelBuffer:
        try:
            return cls(data=bytes(data["data"]), width=int(data["width"]), height=int(data["height"]))
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Invalid pixel buffer: {e}") from e


class SourceImage:
    """
    A decoded, read-only RGBA bitmap.

    The wrapped Pillow image must not be modified after construction.
    """

    def __init__(self, image: PIL.Image.Image, name: str | None = None):
        """
        :param image: The decoded image. Converted to RGBA if necessary.
        :param name: Original file name, if known
        """
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        self._image = image
        self.name = name

    @property
    def image(self) -> PIL.Image.Image:
        """The RGBA Pillow image. Treat as read-only."""
        return self._image

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def size(self) -> tuple[int, int]:
        return self._image.width, self._image.height

    @classmethod
    def from_pil(cls, image: PIL.Image.Image, name: str | None = None) -> SourceImage:
        """Wrap an already decoded Pillow image."""
        return cls(image, name=name)

    @classmethod
    def from_pixel_buffer(cls, buffer: PixelBuffer, name: str | None = None) -> SourceImage:
        """
        Rebuild an image from raw RGBA pixels.

        :raises DecodeError: If the buffer size does not match its dimensions
        """
        if buffer.width <= 0 or buffer.height <= 0:
            raise DecodeError(f"Invalid pixel buffer size {buffer.width}x{buffer.height}")
        if len(buffer.data) != buffer.expected_size:
            raise DecodeError(
                f"Pixel buffer holds {len(buffer.data)} bytes, "
                f"expected {buffer.expected_size} for {buffer.width}x{buffer.height} RGBA"
            )
        image = PIL.Image.frombytes("RGBA", (buffer.width, buffer.height), buffer.data)
        return cls(image, name=name)

    def to_pixel_buffer(self) -> PixelBuffer:
        """Export the raw RGBA pixels for the background path."""
        return PixelBuffer(data=self._image.tobytes(), width=self.width, height=self.height)

    def close(self) -> None:
        """Release the pixel memory. The object is unusable afterwards."""
        self._image.close()

    def __repr__(self) -> str:
        return f"SourceImage(name={self.name!r}, size={self.width}x{self.height})"


def decode_source(data: bytes, name: str | None = None) -> SourceImage:
    """
    Decode an encoded image file.

    EXIF orientation is applied so the image is upright, as a browser would
    show it. Animated images contribute their first frame.

    :param data: The file content
    :param name: File name used in error messages
    :return: The decoded image
    :raises DecodeError: If the data is not a decodable image
    """
    label = name or "image"
    if not data:
        raise DecodeError(f"Failed to load image: {label} (empty file)")
    kind = filetype.guess(data)
    if kind is not None and not kind.mime.startswith("image/"):
        raise DecodeError(f"Failed to load image: {label} (unsupported type {kind.mime})")
    try:
        with PIL.Image.open(io.BytesIO(data)) as handle:
            handle.load()
            image = ImageOps.exif_transpose(handle)
            image = image.convert("RGBA")
    except (
        PIL.UnidentifiedImageError,
        PIL.Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise DecodeError(f"Failed to load image: {label} ({e})") from e
    if image.width == 0 or image.height == 0:
        raise DecodeError(f"Failed to load image: {label} (empty image)")
    logger.debug("Decoded %s: %dx%d", label, image.width, image.height)
    return SourceImage(image, name=name)


def load_source(path: str | os.PathLike) -> SourceImage:
    """
    Read and decode an image file from disk.

    :raises DecodeError: If the file can't be read or decoded
    """
    name = os.path.basename(os.fspath(path))
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise DecodeError(f"Failed to load image: {name} ({e})") from e
    return decode_source(data, name=name)
