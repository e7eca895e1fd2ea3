"""
Export assembly: download names, single files and zip archives.

Single renders are exported as one file named after the source image, bulk
renders are packed into one ``framed_images.zip`` archive.
"""

from __future__ import annotations

import io
import logging
import os
import re
import zipfile
from dataclasses import dataclass
from typing import Iterable

from .config import settings
from .formats import RenderResult, extension, format_from_mime
from .frame_config import ExportFormat

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]+", re.IGNORECASE | re.ASCII)
_EXTENSION = re.compile(r"\.[^/.]+$")

DEFAULT_STEM = "image"


def sanitize_filename(name: str) -> str:
    """
    Make a string safe to use as a file name.

    Every run of characters other than ASCII letters and digits becomes a
    single underscore, leading and trailing underscores are removed, the
    result is lower cased and then cut to ``settings.FILENAME_MAX_LENGTH``.
    The cut may leave a trailing underscore.

    >>> sanitize_filename("My Holiday (1).JPG")
    'my_holiday_1_jpg'
    """
    result = _UNSAFE_CHARS.sub("_", name).strip("_").lower()
    return result[:settings.FILENAME_MAX_LENGTH]


def strip_extension(name: str) -> str:
    """Remove the last extension of a file name (``photo.v2.png`` -> ``photo.v2``)."""
    return _EXTENSION.sub("", name)


def framed_filename(source_name: str | None, fmt: ExportFormat | str) -> str:
    """Name of a bulk render result, ``<base>_framed.<ext>``."""
    base = strip_extension(source_name or "") or DEFAULT_STEM
    return f"{base}_framed.{extension(fmt)}"


def suggested_filename(source_name: str | None, fmt: ExportFormat | str) -> str:
    """
    Download name of a single export.

    :param source_name: Name of the source file
    :param fmt: Output format
    :return: Sanitized stem plus ``.png`` or ``.jpg``
    """
    stem = sanitize_filename(strip_extension(source_name or "")) or DEFAULT_STEM
    return f"{stem}.{extension(fmt)}"


@dataclass(frozen=True)
class ExportFile:
    """A file ready to be written or packed."""
    filename: str
    data: bytes
    mime_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def export_single(result: RenderResult, source_name: str | None) -> ExportFile:
    """Wrap a single render for download."""
    return ExportFile(
        filename=suggested_filename(source_name, result.format),
        data=result.data,
        mime_type=result.mime_type,
    )


def _archive_names(files: list[ExportFile]) -> list[str]:
    names: list[str] = []
    used: set[str] = set()
    for file in files:
        try:
            ext = extension(format_from_mime(file.mime_type))
        except ValueError:
            ext = os.path.splitext(file.filename)[1].lstrip(".") or "bin"
        stem = sanitize_filename(strip_extension(file.filename)) or DEFAULT_STEM
        name = f"{stem}.{ext}"
        counter = 2
        while name in used:
            name = f"{stem}_{counter}.{ext}"
            counter += 1
        used.add(name)
        names.append(name)
    return names


def build_archive(files: Iterable[ExportFile]) -> bytes:
    """
    Pack files into a zip archive.

    Entry names are sanitized, the extension follows the MIME type and
    duplicates get a ``_2``, ``_3``, ... suffix.

    :param files: The files to pack
    :return: The archive content
    :raises ValueError: If there are no files
    """
    files = list(files)
    if not files:
        raise ValueError("No images to export")
    buffer = io.BytesIO()
    with zipfile.ZipFile(
        buffer, "w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=settings.ARCHIVE_COMPRESSION_LEVEL,
    ) as archive:
        for name, file in zip(_archive_names(files), files):
            archive.writestr(name, file.data)
    logger.debug("Packed %d files into archive", len(files))
    return buffer.getvalue()


def write_export(
    files: Iterable[ExportFile],
    target_dir: str | os.PathLike,
    archive_name: str | None = None,
    archive: bool | None = None,
) -> str:
    """
    Write an export to disk.

    A single file is written as is, several files are written as one zip
    archive.

    :param files: The files to export
    :param target_dir: Output directory, created if missing
    :param archive_name: Archive file name, ``settings.ARCHIVE_NAME`` by default
    :param archive: Force (True) or prevent (False) packing, by default only
        several files are packed
    :return: Path of the written file
    :raises ValueError: If there are no files
    """
    files = list(files)
    if not files:
        raise ValueError("No images to export")
    os.makedirs(target_dir, exist_ok=True)
    if archive is None:
        archive = len(files) > 1
    if not archive:
        if len(files) > 1:
            raise ValueError("Several files can only be exported as an archive")
        path = os.path.join(target_dir, files[0].filename)
        data = files[0].data
    else:
        path = os.path.join(target_dir, archive_name or settings.ARCHIVE_NAME)
        data = build_archive(files)
    with open(path, "wb") as f:
        f.write(data)
    logger.info("Exported %d image(s) to %s", len(files), path)
    return path


def archive_file(files: Iterable[ExportFile], archive_name: str | None = None) -> ExportFile:
    """Pack files into a zip archive, wrapped as an :class:`ExportFile`."""
    return ExportFile(
        filename=archive_name or settings.ARCHIVE_NAME,
        data=build_archive(files),
        mime_type="application/zip",
    )

