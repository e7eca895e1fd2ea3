"""
2D drawing surfaces.

The compositor draws exclusively through the :class:`DrawingSurface`
interface: rectangle and path fills (optionally casting a canvas style
shadow), clipped image drawing, path strokes, cropping and encoding. This
keeps the render pipeline independent of the raster backend.

:class:`PilSurface` is the Pillow backed implementation. It keeps a straight
alpha ``RGBA`` image and composites every drawing operation with
source-over, like an HTML canvas with default settings:

- shapes are rendered as SVG by resvg into a supersampled coverage mask
  (:func:`framestag.vector.render_mask`)
- shadows blur the shape's alpha with a Gaussian of sigma = blur / 2, the
  canvas ``shadowBlur`` convention
- images are resampled with Lanczos, only the visible part of the
  destination rectangle is computed
- JPEG output flattens transparency over black
"""

from __future__ import annotations

import io
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
import PIL.Image
from PIL import ImageFilter

from .color import ColorParser, RGBAColor, clamp_channels, parse_color, pil_color_parser
from .config import settings
from .exceptions import EncodeError, GradientColorError, SurfaceUnavailableError
from .formats import pil_format
from .frame_config import ExportFormat
from .geometry import Rect
from .path import Path
from .source import SourceImage
from .vector import fill_element, render_mask, stroke_element

logger = logging.getLogger(__name__)

Box = tuple[int, int, int, int]

ColorLike = Union[str, RGBAColor]
"A color string or an already parsed (r, g, b, a) tuple"


@dataclass(frozen=True)
class LinearGradient:
    """A linear gradient paint.

    Pixels are projected onto the line from (x0, y0) to (x1, y1) and colored
    by the stops, clamped to the first and last stop beyond the line's ends.

    :param stops: (offset, color) pairs, offsets ascending within 0.0-1.0
    """
    x0: float
    y0: float
    x1: float
    y1: float
    stops: tuple[tuple[float, ColorLike], ...]

    @classmethod
    def two_stop(cls, x0: float, y0: float, x1: float, y1: float,
                 start: ColorLike, end: ColorLike) -> LinearGradient:
        return cls(x0, y0, x1, y1, ((0.0, start), (1.0, end)))


Paint = Union[str, RGBAColor, LinearGradient]


@dataclass(frozen=True)
class Shadow:
    """A canvas style shadow.

    :param color: Shadow color, its alpha scales the shadow's opacity
    :param blur: Blur amount as canvas ``shadowBlur`` (Gaussian sigma = blur / 2)
    :param offset_x: Horizontal shift in pixels
    :param offset_y: Vertical shift in pixels
    """
    color: ColorLike
    blur: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0


def _pixel_box(rect: Rect, limit: Box, margin: float = 0.0) -> Box | None:
    """Smallest integer box containing ``rect`` grown by ``margin``, clipped to ``limit``."""
    x0 = max(limit[0], int(math.floor(rect.x - margin)))
    y0 = max(limit[1], int(math.floor(rect.y - margin)))
    x1 = min(limit[2], int(math.ceil(rect.right + margin)))
    y1 = min(limit[3], int(math.ceil(rect.bottom + margin)))
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def _rect_coverage(rect: Rect, box: Box) -> np.ndarray:
    """Exact area coverage of an axis aligned rectangle within ``box``."""
    px = np.arange(box[0], box[2], dtype=np.float64)
    py = np.arange(box[1], box[3], dtype=np.float64)
    cov_x = np.clip(np.minimum(px + 1, rect.right) - np.maximum(px, rect.x), 0.0, 1.0)
    cov_y = np.clip(np.minimum(py + 1, rect.bottom) - np.maximum(py, rect.y), 0.0, 1.0)
    return np.outer(cov_y, cov_x).astype(np.float32)


class DrawingSurface(ABC):
    """
    A raster target the layer compositor draws onto.

    Surfaces start fully transparent. All coordinates are floats in surface
    pixels, origin top-left.
    """

    @property
    @abstractmethod
    def width(self) -> int:
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        ...

    @property
    def bounds(self) -> Rect:
        return Rect(0.0, 0.0, float(self.width), float(self.height))

    @abstractmethod
    def parse_color(self, color: str) -> tuple:
        """
        The surface's own color parser.

        :raises ValueError: If the surface can't render this color
        """

    @abstractmethod
    def fill_rect(self, rect: Rect, paint: Paint) -> None:
        """Fill a rectangle with a color or a gradient."""

    @abstractmethod
    def fill_path(self, path: Path, color: ColorLike, shadow: Shadow | None = None) -> None:
        """Fill a closed path, optionally casting a shadow beneath it."""

    @abstractmethod
    def draw_image(self, source: SourceImage, rect: Rect, clip: Path | None = None) -> None:
        """Draw the whole source image scaled into ``rect``, optionally clipped."""

    @abstractmethod
    def stroke_path(self, path: Path, color: ColorLike, line_width: float,
                    dash: Sequence[float] = ()) -> None:
        """Stroke a closed path, centered on the outline."""

    @abstractmethod
    def crop(self, rect: Rect) -> DrawingSurface:
        """Return a new surface holding a copy of the given region."""

    @abstractmethod
    def encode(self, fmt: ExportFormat | str, quality: float | None = None) -> bytes:
        """
        Encode the surface content.

        :param fmt: Output format
        :param quality: Lossy quality factor 0.0-1.0, ignored by lossless formats
        :raises EncodeError: If the surface can't be encoded
        """

    @abstractmethod
    def close(self) -> None:
        """Release the surface memory."""

    def __enter__(self) -> DrawingSurface:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class PilSurface(DrawingSurface):
    """
    Drawing surface backed by a Pillow ``RGBA`` image.

    Example:
        >>> surface = PilSurface(200, 100)
        >>> surface.fill_rect(Rect(0, 0, 200, 100), "#336699")
        >>> png = surface.encode("png")
    """

    def __init__(self, width: int, height: int, supersample: int | None = None,
                 color_parser: ColorParser | None = None):
        """
        :param width: Width in pixels
        :param height: Height in pixels
        :param supersample: Samples per pixel and axis for anti-aliasing,
            ``settings.SUPERSAMPLE`` by default
        :param color_parser: Color parser, Pillow's by default
        """
        self._image: PIL.Image.Image | None = PIL.Image.new("RGBA", (width, height), (0, 0, 0, 0))
        self._supersample = supersample or settings.SUPERSAMPLE
        self._color_parser = color_parser or pil_color_parser

    @classmethod
    def from_image(cls, image: PIL.Image.Image, supersample: int | None = None,
                   color_parser: ColorParser | None = None) -> PilSurface:
        """Wrap an existing image, converted to RGBA. The image is not copied."""
        surface = cls.__new__(cls)
        surface._image = image if image.mode == "RGBA" else image.convert("RGBA")
        surface._supersample = supersample or settings.SUPERSAMPLE
        surface._color_parser = color_parser or pil_color_parser
        return surface

    @property
    def image(self) -> PIL.Image.Image:
        """The backing image."""
        if self._image is None:
            raise ValueError("Surface is closed")
        return self._image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def closed(self) -> bool:
        return self._image is None

    def to_pil(self) -> PIL.Image.Image:
        """A copy of the current content."""
        return self.image.copy()

    def to_array(self) -> np.ndarray:
        """The current content as (height, width, 4) uint8 array."""
        return np.asarray(self.image).copy()

    def parse_color(self, color: str) -> tuple:
        return self._color_parser(color)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _rgba(self, color: ColorLike) -> RGBAColor:
        if isinstance(color, tuple):
            channels = clamp_channels(color)
            if len(channels) == 3:
                return channels[0], channels[1], channels[2], 255
            return channels[0], channels[1], channels[2], channels[3]
        return parse_color(color, self._color_parser)

    @property
    def _limit(self) -> Box:
        return 0, 0, self.width, self.height

    def _mask(self, element: str, bounds: Rect, margin: float = 0.0,
              limit: Box | None = None) -> tuple[Box, np.ndarray] | None:
        """Coverage of an SVG element within its pixel bounding box."""
        if not element:
            return None
        box = _pixel_box(bounds, limit or self._limit, margin)
        if box is None:
            return None
        return box, render_mask([element], box, self._supersample)

    def _composite(self, box: Box, rgb, alpha: np.ndarray) -> None:
        """
        Source-over a colored layer onto the surface.

        :param box: Integer pixel box of the layer
        :param rgb: A color triple or a (h, w, 3) array
        :param alpha: Float opacity 0.0-1.0 per pixel, shape (h, w)
        """
        x0, y0, x1, y1 = box
        layer = np.empty((y1 - y0, x1 - x0, 4), dtype=np.uint8)
        layer[..., :3] = rgb
        layer[..., 3] = np.clip(np.rint(alpha * 255.0), 0, 255).astype(np.uint8)
        if not layer[..., 3].any():
            return
        self.image.alpha_composite(PIL.Image.fromarray(layer, "RGBA"), dest=(x0, y0))

    def _gradient_pixels(self, gradient: LinearGradient,
                         box: tuple[int, int, int, int]) -> tuple[np.ndarray, np.ndarray] | None:
        """Evaluate a gradient at the pixel centers of a box."""
        colors = []
        try:
            for _, color in gradient.stops:
                colors.append(self._rgba(color))
        except ValueError as e:
            first = gradient.stops[0][1] if gradient.stops else None
            last = gradient.stops[-1][1] if gradient.stops else None
            raise GradientColorError(first, last, str(e)) from e
        if not colors:
            return None
        dx = gradient.x1 - gradient.x0
        dy = gradient.y1 - gradient.y0
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            # a zero length gradient line paints nothing
            return None
        x0, y0, x1, y1 = box
        xs = np.arange(x0, x1, dtype=np.float64) + 0.5
        ys = np.arange(y0, y1, dtype=np.float64) + 0.5
        t = ((xs[None, :] - gradient.x0) * dx + (ys[:, None] - gradient.y0) * dy) / length_sq
        t = np.clip(t, 0.0, 1.0)

        offsets = np.array([s[0] for s in gradient.stops], dtype=np.float64)
        rgba = np.array(colors, dtype=np.float64)
        # interpolate premultiplied, as a canvas does
        alpha = rgba[:, 3] / 255.0
        premul = rgba[:, :3] * alpha[:, None]
        out_alpha = np.interp(t, offsets, alpha)
        out_rgb = np.stack([np.interp(t, offsets, premul[:, c]) for c in range(3)], axis=-1)
        safe = np.where(out_alpha > 0, out_alpha, 1.0)
        out_rgb = np.clip(np.rint(out_rgb / safe[..., None]), 0, 255).astype(np.uint8)
        return out_rgb, out_alpha

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _rect_mask(self, rect: Rect) -> tuple[Box, np.ndarray] | None:
        box = _pixel_box(rect, self._limit)
        if box is None:
            return None
        return box, _rect_coverage(rect, box)

    def fill_rect(self, rect: Rect, paint: Paint) -> None:
        if rect.is_empty:
            return
        masked = self._rect_mask(rect)
        if masked is None:
            return
        box, coverage = masked
        if isinstance(paint, LinearGradient):
            evaluated = self._gradient_pixels(paint, box)
            if evaluated is None:
                return
            rgb, alpha = evaluated
            self._composite(box, rgb, alpha * coverage)
            return
        r, g, b, a = self._rgba(paint)
        self._composite(box, (r, g, b), coverage * (a / 255.0))

    def fill_path(self, path: Path, color: ColorLike, shadow: Shadow | None = None) -> None:
        r, g, b, a = self._rgba(color)
        if shadow is not None:
            self._draw_shadow(path, a / 255.0, shadow)
        masked = self._mask(fill_element(path), path.bounds())
        if masked is None:
            return
        box, coverage = masked
        self._composite(box, (r, g, b), coverage * (a / 255.0))

    def _draw_shadow(self, path: Path, fill_alpha: float, shadow: Shadow) -> None:
        sr, sg, sb, sa = self._rgba(shadow.color)
        if sa == 0 or fill_alpha == 0:
            return
        sigma = max(0.0, shadow.blur / 2)
        margin = int(math.ceil(3 * sigma)) + 1 if sigma > 0 else 0
        moved = path.translated(shadow.offset_x, shadow.offset_y)
        # render beyond the surface by the blur margin so the blur sees
        # the shape's true extent near the edges
        limit = (-margin, -margin, self.width + margin, self.height + margin)
        masked = self._mask(fill_element(moved), moved.bounds(), margin, limit)
        if masked is None:
            return
        box, coverage = masked
        mask = PIL.Image.fromarray(np.clip(np.rint(coverage * 255.0), 0, 255).astype(np.uint8), "L")
        if sigma > 0:
            mask = mask.filter(ImageFilter.GaussianBlur(radius=sigma))
        alpha = np.asarray(mask, dtype=np.float32) / 255.0 * (sa / 255.0) * fill_alpha
        visible = _pixel_box(Rect(box[0], box[1], box[2] - box[0], box[3] - box[1]), self._limit)
        if visible is None:
            return
        vx0, vy0, vx1, vy1 = visible
        alpha = alpha[vy0 - box[1]:vy1 - box[1], vx0 - box[0]:vx1 - box[0]]
        self._composite(visible, (sr, sg, sb), alpha)

    def draw_image(self, source: SourceImage, rect: Rect, clip: Path | None = None) -> None:
        if rect.is_empty or source.width <= 0 or source.height <= 0:
            return
        visible = rect.intersection(self.bounds)
        if clip is not None:
            visible = visible.intersection(clip.bounds())
        if visible.is_empty:
            return
        box = _pixel_box(visible, self._limit)
        if box is None:
            return
        x0, y0, x1, y1 = box

        scale_x = source.width / rect.width
        scale_y = source.height / rect.height
        source_box = (
            min(max((x0 - rect.x) * scale_x, 0.0), source.width),
            min(max((y0 - rect.y) * scale_y, 0.0), source.height),
            min(max((x1 - rect.x) * scale_x, 0.0), source.width),
            min(max((y1 - rect.y) * scale_y, 0.0), source.height),
        )
        if source_box[2] <= source_box[0] or source_box[3] <= source_box[1]:
            return
        resized = source.image.resize(
            (x1 - x0, y1 - y0),
            resample=PIL.Image.Resampling.LANCZOS,
            box=source_box,
        )
        pixels = np.asarray(resized)
        coverage = _rect_coverage(rect, box)
        if clip is not None:
            coverage = coverage * render_mask([fill_element(clip)], box, self._supersample)
        alpha = pixels[..., 3].astype(np.float32) / 255.0 * coverage
        self._composite(box, pixels[..., :3], alpha)

    def stroke_path(self, path: Path, color: ColorLike, line_width: float,
                    dash: Sequence[float] = ()) -> None:
        r, g, b, a = self._rgba(color)
        # a miter join of a right angle stays within half the line width on each axis
        masked = self._mask(stroke_element(path, line_width, dash), path.bounds(), line_width / 2 + 1)
        if masked is None:
            return
        box, coverage = masked
        self._composite(box, (r, g, b), coverage * (a / 255.0))

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def crop(self, rect: Rect) -> PilSurface:
        box = (
            int(round(rect.x)), int(round(rect.y)),
            int(round(rect.right)), int(round(rect.bottom)),
        )
        return PilSurface.from_image(self.image.crop(box), supersample=self._supersample,
                                     color_parser=self._color_parser)

    def encode(self, fmt: ExportFormat | str, quality: float | None = None) -> bytes:
        fmt = ExportFormat(fmt)
        if self._image is None:
            raise EncodeError("Can not encode a closed surface")
        buffer = io.BytesIO()
        try:
            if fmt == ExportFormat.JPG:
                flat = PIL.Image.new("RGBA", self._image.size, (0, 0, 0, 255))
                flat.alpha_composite(self._image)
                q = settings.JPEG_QUALITY if quality is None else int(round(quality * 100))
                flat.convert("RGB").save(buffer, format=pil_format(fmt), quality=q)
            else:
                self._image.save(buffer, format=pil_format(fmt))
        except (OSError, ValueError) as e:
            raise EncodeError(f"Failed to create blob: {e}") from e
        data = buffer.getvalue()
        if not data:
            raise EncodeError("Failed to create blob")
        return data

    def close(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None

    def __repr__(self) -> str:
        if self._image is None:
            return "PilSurface(closed)"
        return f"PilSurface({self.width}x{self.height})"


def create_surface(width: int, height: int) -> PilSurface:
    """
    Allocate a new transparent drawing surface.

    :param width: Width in pixels
    :param height: Height in pixels
    :return: The surface
    :raises SurfaceUnavailableError: If the size is invalid or too large, or
        the memory can't be allocated
    """
    if width <= 0 or height <= 0:
        raise SurfaceUnavailableError(f"Could not get canvas context for {width}x{height}")
    if width * height > settings.MAX_CANVAS_PIXELS:
        raise SurfaceUnavailableError(
            f"Canvas of {width}x{height} exceeds the limit of {settings.MAX_CANVAS_PIXELS} pixels"
        )
    try:
        return PilSurface(width, height)
    except (MemoryError, ValueError) as e:
        raise SurfaceUnavailableError(f"Could not get canvas context: {e}") from e
