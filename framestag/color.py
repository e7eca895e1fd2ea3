"""
Color validation and sanitizing.

Hex colors are checked strictly (``#RGB``, ``#RRGGBB`` or ``#RRGGBBAA``).
Everything else is delegated to the drawing surface's own color parser, which
for the Pillow surface is :func:`PIL.ImageColor.getrgb`. It understands named
colors as well as ``rgb()``, ``rgba()``, ``hsl()`` and ``hsv()`` notations.
"""

from __future__ import annotations

import re
from typing import Callable

from PIL import ImageColor

from .exceptions import InvalidColorError

ColorParser = Callable[[str], tuple]
"Parses a color string into a channel tuple, raising ValueError if it can't"

RGBAColor = tuple[int, int, int, int]

DEFAULT_FALLBACK = "#ffffff"

_HEX_PATTERN = re.compile(r"^#([A-Fa-f0-9]{3}|[A-Fa-f0-9]{6}|[A-Fa-f0-9]{8})$")


def pil_color_parser(color: str) -> tuple:
    """Parse a color with Pillow's CSS-like parser."""
    return ImageColor.getrgb(color)


def is_valid_color(color: object, parser: ColorParser | None = None) -> bool:
    """
    Decide if a color string can be rendered.

    :param color: The color string
    :param parser: The color parser of the drawing surface, Pillow's by default
    :return: True if the color is renderable
    """
    if not color or not isinstance(color, str):
        return False
    if color.startswith("#"):
        return _HEX_PATTERN.match(color) is not None
    parser = parser or pil_color_parser
    try:
        parser(color)
    except (ValueError, TypeError):
        return False
    return True


def sanitize_color(color: object, fallback: str = DEFAULT_FALLBACK) -> str:
    """
    Return the color if it is valid, otherwise a safe fallback.

    :param color: The color string
    :param fallback: Used if ``color`` is invalid
    :return: ``color``, ``fallback`` or ``#ffffff``, whichever is valid first
    """
    if is_valid_color(color):
        return color
    return fallback if is_valid_color(fallback) else DEFAULT_FALLBACK


def validate_color(color: object, field: str, parser: ColorParser | None = None) -> str:
    """
    Return the color unchanged or raise a descriptive error.

    :param color: The color string
    :param field: Name of the configuration field, used in the error message
    :param parser: The color parser of the drawing surface
    :return: The color
    :raises InvalidColorError: If the color is not renderable
    """
    if not is_valid_color(color, parser):
        raise InvalidColorError(field, color)
    return color


def clamp_channels(channels) -> tuple[int, ...]:
    """Round channels to int and clamp them to 0-255. Pillow accepts rgb(300, 0, 0) unclamped."""
    return tuple(max(0, min(255, int(c))) for c in channels)


def parse_color(color: str, parser: ColorParser | None = None) -> RGBAColor:
    """
    Convert a color string into an 8-bit RGBA tuple.

    :param color: The color string
    :param parser: The color parser of the drawing surface
    :return: (r, g, b, a) with alpha 255 if the color has none, every channel
        clamped to 0-255
    :raises ValueError: If the color can not be parsed
    """
    if not isinstance(color, str):
        raise ValueError(f"Invalid color format: {color!r}")
    if color.startswith("#") and _HEX_PATTERN.match(color) is None:
        raise ValueError(f"Invalid hex color: {color}")
    channels = clamp_channels((parser or pil_color_parser)(color))
    if len(channels) == 3:
        return channels[0], channels[1], channels[2], 255
    if len(channels) == 4:
        return channels[0], channels[1], channels[2], channels[3]
    raise ValueError(f"Unsupported color channel count for {color}")
