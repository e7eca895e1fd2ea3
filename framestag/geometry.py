"""
Placement geometry of the source image inside a frame.

All coordinates are floats in canvas pixels, origin top-left.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .frame_config import FitMode, FrameConfig


@dataclass(frozen=True)
class Rect:
    """An axis aligned rectangle.

    Attributes:
        x: Left edge
        y: Top edge
        width: Width (non-negative for meaningful rectangles)
        height: Height (non-negative for meaningful rectangles)
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def aspect(self) -> float:
        """Width divided by height (0.0 for a degenerate rectangle)."""
        if self.height <= 0:
            return 0.0
        return self.width / self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def intersection(self, other: Rect) -> Rect:
        """The overlapping part of both rectangles (zero-sized if disjoint)."""
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.right, other.right)
        y1 = min(self.bottom, other.bottom)
        return Rect(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0))


def image_area(config: FrameConfig, offset: float = 0) -> Rect:
    """
    The part of the frame inside the padding.

    :param config: The frame configuration
    :param offset: Shift applied to both axes (the shadow extent)
    :return: The image area, possibly with a non-positive size
    """
    return Rect(
        config.padding + offset,
        config.padding + offset,
        config.image_area_width,
        config.image_area_height,
    )


def resolve_placement(
    image_width: float,
    image_height: float,
    area_width: float,
    area_height: float,
    area_x: float = 0.0,
    area_y: float = 0.0,
    fit: FitMode | str = FitMode.CONTAIN,
) -> Rect:
    """
    Compute where the source image is drawn inside the image area.

    ``contain`` scales the image to fit entirely into the area, ``cover``
    scales it to cover the whole area, overflowing on one axis. In both cases
    the aspect ratio is preserved and the result is centered.

    :param image_width: Source width in pixels
    :param image_height: Source height in pixels
    :param area_width: Image area width
    :param area_height: Image area height
    :param area_x: Image area left edge
    :param area_y: Image area top edge
    :param fit: The fit mode
    :return: The rectangle the image is drawn into. Zero-sized at the area's
        center if either the image or the area is degenerate.
    """
    fit = FitMode(fit)
    if image_width <= 0 or image_height <= 0 or area_width <= 0 or area_height <= 0:
        return Rect(area_x + area_width / 2, area_y + area_height / 2, 0.0, 0.0)

    image_aspect = image_width / image_height
    area_aspect = area_width / area_height

    if fit == FitMode.CONTAIN:
        if image_aspect > area_aspect:
            # wider than the area - fit to width
            draw_width = area_width
            draw_height = area_width / image_aspect
        else:
            draw_height = area_height
            draw_width = area_height * image_aspect
    else:
        if image_aspect > area_aspect:
            # wider than the area - fit to height, overflow horizontally
            draw_height = area_height
            draw_width = area_height * image_aspect
        else:
            draw_width = area_width
            draw_height = area_width / image_aspect

    return Rect(
        area_x + (area_width - draw_width) / 2,
        area_y + (area_height - draw_height) / 2,
        draw_width,
        draw_height,
    )


def effective_radius(requested: float, width: float, height: float) -> float:
    """
    Clamp a corner radius to half of the shorter side.

    :param requested: Configured radius
    :param width: Width of the rounded rectangle
    :param height: Height of the rounded rectangle
    :return: The radius to use, 0.0 if no rounding applies
    """
    if requested <= 0 or width <= 0 or height <= 0:
        return 0.0
    return float(min(requested, width / 2, height / 2))


def shadow_offset_y(spread: float) -> float:
    """Vertical drop of the shadow for a given spread."""
    return max(2.0, spread / 5)


def shadow_extent(config: FrameConfig) -> int:
    """
    Margin added on every side of the working canvas so the shadow blur is
    never clipped by the canvas edge.

    :param config: The frame configuration
    :return: The margin in pixels, 0 if the shadow is disabled
    """
    if not config.shadow:
        return 0
    spread = config.shadow_spread
    return int(math.ceil(spread + shadow_offset_y(spread)))
