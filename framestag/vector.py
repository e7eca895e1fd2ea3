"""Shape masks rendered with resvg.

Fills, clips and strokes of a :class:`~framestag.path.Path` are written as
SVG ``<path>`` elements and rendered by resvg. Only the alpha channel is
used: the surface colors and composites the resulting coverage mask itself.

Algorithm:
- Convert the shapes to an SVG document whose viewBox is the pixel box
- Render at ``supersample`` times the box size
- Downscale the alpha channel with a BOX filter
"""

from __future__ import annotations

from io import BytesIO
from typing import Sequence

import numpy as np
import PIL.Image
from resvg_py import svg_to_bytes

from .path import Path

Box = tuple[int, int, int, int]

MASK_COLOR = "#ffffff"


def _num(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def fill_element(path: Path) -> str:
    """SVG element filling a closed path."""
    d = path.to_svg_d()
    if not d:
        return ""
    return f'<path d="{d}" fill="{MASK_COLOR}" fill-rule="nonzero" stroke="none"/>'


def stroke_element(path: Path, line_width: float, dash: Sequence[float] = ()) -> str:
    """
    SVG element stroking a path, centered on the outline.

    Caps are butt caps and joins are miter joins, the defaults of a canvas.

    :param path: The path
    :param line_width: Stroke width in pixels
    :param dash: Alternating on/off lengths, empty for a solid stroke
    """
    d = path.to_svg_d()
    if not d or line_width <= 0:
        return ""
    style = (
        f'fill="none" stroke="{MASK_COLOR}" stroke-width="{_num(line_width)}" '
        f'stroke-linecap="butt" stroke-linejoin="miter"'
    )
    if dash:
        style += f' stroke-dasharray="{" ".join(_num(d) for d in dash)}"'
    return f'<path d="{d}" {style}/>'


def shapes_to_svg(elements: Sequence[str], box: Box, render_scale: int = 1) -> str:
    """Wrap SVG elements into a document showing exactly ``box``.

    Args:
        elements: SVG element strings in surface coordinates
        box: Integer pixel box (x0, y0, x1, y1) to show
        render_scale: Multiply width/height attributes for a higher resolution
            render while keeping the viewBox at the box

    Returns:
        SVG document string
    """
    x0, y0, x1, y1 = box
    width, height = x1 - x0, y1 - y0
    elements_str = "\n  ".join(e for e in elements if e)
    return f'''<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="{width * render_scale}" height="{height * render_scale}" viewBox="{x0} {y0} {width} {height}" shape-rendering="geometricPrecision">
  {elements_str}
</svg>'''


def render_mask(elements: Sequence[str], box: Box, supersample: int = 1) -> np.ndarray:
    """Render shapes into a coverage mask.

    Args:
        elements: SVG element strings in surface coordinates
        box: Integer pixel box (x0, y0, x1, y1) the mask covers
        supersample: Render at this multiple of the box size, then downscale

    Returns:
        float32 array of shape (y1 - y0, x1 - x0) with values 0.0-1.0
    """
    x0, y0, x1, y1 = box
    width, height = x1 - x0, y1 - y0
    if width <= 0 or height <= 0:
        return np.zeros((max(height, 0), max(width, 0)), dtype=np.float32)
    if not any(elements):
        return np.zeros((height, width), dtype=np.float32)

    scale = max(1, int(supersample))
    svg_str = shapes_to_svg(elements, box, render_scale=scale)
    png_bytes = bytes(svg_to_bytes(svg_string=svg_str))
    with PIL.Image.open(BytesIO(png_bytes)) as img:
        alpha = img.convert("RGBA").getchannel("A")
    if scale > 1:
        # BOX is exact for integer downscaling
        alpha = alpha.resize((width, height), PIL.Image.Resampling.BOX)
    return np.asarray(alpha, dtype=np.float32) / 255.0
