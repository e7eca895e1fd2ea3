"""
Output formats and the render result container.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import settings
from .frame_config import ExportFormat

_MIME_TYPES = {
    ExportFormat.PNG: "image/png",
    ExportFormat.JPG: "image/jpeg",
}

_PIL_FORMATS = {
    ExportFormat.PNG: "PNG",
    ExportFormat.JPG: "JPEG",
}


def mime_type(fmt: ExportFormat | str) -> str:
    """MIME type of an output format."""
    return _MIME_TYPES[ExportFormat(fmt)]


def pil_format(fmt: ExportFormat | str) -> str:
    """Pillow encoder name of an output format."""
    return _PIL_FORMATS[ExportFormat(fmt)]


def extension(fmt: ExportFormat | str) -> str:
    """File extension (without dot) of an output format."""
    return ExportFormat(fmt).value


def format_from_mime(mime: str) -> ExportFormat:
    """Inverse of :func:`mime_type`, ``image/jpg`` is accepted as well."""
    mime = mime.lower()
    if mime in ("image/jpeg", "image/jpg"):
        return ExportFormat.JPG
    if mime == "image/png":
        return ExportFormat.PNG
    raise ValueError(f"Unsupported output MIME type: {mime}")


def jpeg_quality() -> float:
    """Lossy quality as a 0.0-1.0 factor."""
    return settings.JPEG_QUALITY / 100


@dataclass(frozen=True)
class RenderResult:
    """An encoded, finished frame.

    :param data: The encoded image bytes
    :param format: The output format
    :param width: Pixel width, equals the configured frame width
    :param height: Pixel height, equals the configured frame height
    :param quality: Lossy quality factor, None for lossless output
    """
    data: bytes
    format: ExportFormat
    width: int
    height: int
    quality: float | None = None

    @property
    def mime_type(self) -> str:
        return mime_type(self.format)

    @property
    def extension(self) -> str:
        return extension(self.format)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return (
            f"RenderResult({self.mime_type}, {self.width}x{self.height}, "
            f"{self.size_bytes} bytes)"
        )
