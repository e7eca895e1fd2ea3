"""
Rectangle and rounded rectangle paths.

A :class:`Path` is a small, reusable list of drawing segments. The same path
clips the placed image, casts the shadow and carries the border stroke, so
all three line up exactly. Surfaces render it through :meth:`Path.to_svg_d`,
:meth:`Path.flatten` gives the polyline for bounds and hit tests.

Segment order of :func:`rounded_rect_path` is fixed: it starts at the end of
the top-left arc and runs clockwise (top edge, top-right arc, right edge,
bottom-right arc, bottom edge, bottom-left arc, left edge, top-left arc). The
order only matters for the phase of dashed strokes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Union

from .geometry import Rect, effective_radius


@dataclass(frozen=True)
class MoveTo:
    x: float
    y: float


@dataclass(frozen=True)
class LineTo:
    x: float
    y: float


@dataclass(frozen=True)
class Arc:
    """Circular arc, angles in radians, drawn with increasing angle (clockwise on screen)."""
    cx: float
    cy: float
    radius: float
    start: float
    end: float

    def point_at(self, angle: float) -> tuple[float, float]:
        return (
            self.cx + self.radius * math.cos(angle),
            self.cy + self.radius * math.sin(angle),
        )


@dataclass(frozen=True)
class Close:
    pass


Segment = Union[MoveTo, LineTo, Arc, Close]


@dataclass(frozen=True)
class Path:
    """An ordered, immutable list of path segments.

    :param segments: The segments in drawing order
    :param radius: Corner radius the path was built with (0.0 for plain rectangles)
    """
    segments: tuple[Segment, ...] = field(default_factory=tuple)
    radius: float = 0.0

    def translated(self, dx: float, dy: float) -> Path:
        """Return the path moved by (dx, dy)."""
        moved: list[Segment] = []
        for seg in self.segments:
            if isinstance(seg, MoveTo):
                moved.append(MoveTo(seg.x + dx, seg.y + dy))
            elif isinstance(seg, LineTo):
                moved.append(LineTo(seg.x + dx, seg.y + dy))
            elif isinstance(seg, Arc):
                moved.append(Arc(seg.cx + dx, seg.cy + dy, seg.radius, seg.start, seg.end))
            else:
                moved.append(seg)
        return Path(tuple(moved), self.radius)

    def flatten(self, scale: float = 1.0, tolerance: float = 0.25) -> list[tuple[float, float]]:
        """
        Convert the path into a closed polyline.

        :param scale: Factor applied to all coordinates (for supersampling)
        :param tolerance: Maximum distance between an arc and its chords,
            in scaled pixels
        :return: The points in path order. The closing point is not repeated.
        """
        points: list[tuple[float, float]] = []
        for seg in self.segments:
            if isinstance(seg, (MoveTo, LineTo)):
                points.append((seg.x * scale, seg.y * scale))
            elif isinstance(seg, Arc):
                steps = _arc_steps(seg.radius * scale, seg.end - seg.start, tolerance)
                for i in range(steps + 1):
                    angle = seg.start + (seg.end - seg.start) * i / steps
                    x, y = seg.point_at(angle)
                    points.append((x * scale, y * scale))
        return _dedupe(points)

    def to_svg_d(self) -> str:
        """The path as an SVG path ``d`` attribute."""
        parts = []
        for seg in self.segments:
            if isinstance(seg, MoveTo):
                parts.append(f"M {seg.x:.4f} {seg.y:.4f}")
            elif isinstance(seg, LineTo):
                parts.append(f"L {seg.x:.4f} {seg.y:.4f}")
            elif isinstance(seg, Arc):
                x, y = seg.point_at(seg.end)
                large = 1 if abs(seg.end - seg.start) > math.pi else 0
                sweep = 1 if seg.end > seg.start else 0
                r = f"{seg.radius:.4f}"
                parts.append(f"A {r} {r} 0 {large} {sweep} {x:.4f} {y:.4f}")
            else:
                parts.append("Z")
        return " ".join(parts)

    def bounds(self) -> Rect:
        """Bounding box of the path."""
        points = self.flatten()
        if not points:
            return Rect(0.0, 0.0, 0.0, 0.0)
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def _arc_steps(radius: float, sweep: float, tolerance: float) -> int:
    if radius <= tolerance:
        return 1
    max_step = 2 * math.acos(1 - tolerance / radius)
    return max(1, int(math.ceil(abs(sweep) / max_step)))


def _dedupe(points: list[tuple[float, float]]) -> list[tuple[float, float]]:
    result: list[tuple[float, float]] = []
    for p in points:
        if not result or abs(result[-1][0] - p[0]) > 1e-9 or abs(result[-1][1] - p[1]) > 1e-9:
            result.append(p)
    if len(result) > 1 and abs(result[0][0] - result[-1][0]) < 1e-9 and abs(result[0][1] - result[-1][1]) < 1e-9:
        result.pop()
    return result


def rect_path(x: float, y: float, width: float, height: float) -> Path:
    """A plain clockwise rectangle starting at the top-left corner."""
    return Path((
        MoveTo(x, y),
        LineTo(x + width, y),
        LineTo(x + width, y + height),
        LineTo(x, y + height),
        Close(),
    ))


def rounded_rect_path(x: float, y: float, width: float, height: float, radius: float) -> Path:
    """
    Build a rounded rectangle path.

    :param x: Left edge
    :param y: Top edge
    :param width: Width
    :param height: Height
    :param radius: Requested corner radius, clamped to half the shorter side
    :return: The path. A plain rectangle if the effective radius is 0.
    """
    r = effective_radius(radius, width, height)
    if r <= 0:
        return rect_path(x, y, width, height)
    half_pi = math.pi / 2
    return Path((
        MoveTo(x + r, y),
        LineTo(x + width - r, y),
        Arc(x + width - r, y + r, r, -half_pi, 0.0),
        LineTo(x + width, y + height - r),
        Arc(x + width - r, y + height - r, r, 0.0, half_pi),
        LineTo(x + r, y + height),
        Arc(x + r, y + height - r, r, half_pi, math.pi),
        LineTo(x, y + r),
        Arc(x + r, y + r, r, math.pi, 3 * half_pi),
        Close(),
    ), radius=r)


def placement_path(rect: Rect, radius: float) -> Path:
    """The clip/shadow/border path of a placed image."""
    return rounded_rect_path(rect.x, rect.y, rect.width, rect.height, radius)
