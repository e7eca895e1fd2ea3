"""
Layer compositor.

Renders one frame per call as a short, fixed sequence of stages::

    VALIDATE_CONFIG -> COMPUTE_CANVAS_EXTENT -> FILL_BACKGROUND
    -> COMPUTE_PLACEMENT -> DRAW_SHADOW -> DRAW_IMAGE -> DRAW_BORDER
    -> CROP_AND_ENCODE -> DONE

``DRAW_SHADOW`` and ``DRAW_BORDER`` only run when enabled. Any error ends the
render in ``FAILED`` and propagates to the caller.

When the shadow is enabled the working canvas is enlarged by the shadow
extent on every side and everything is drawn shifted by that extent, so the
blur is never clipped by the canvas edge. The final step crops back to the
exact configured size.

:func:`render_frame` is a pure function of (source pixels, configuration):
the interactive preview and the background worker both call it and thus
produce byte-identical output for the same input.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .color import ColorParser, validate_color
from .exceptions import FrameError
from .formats import RenderResult, jpeg_quality
from .frame_config import BackgroundType, ExportFormat, FrameConfig, GradientDirection
from .geometry import Rect, image_area, resolve_placement, shadow_extent, shadow_offset_y
from .path import placement_path
from .source import SourceImage
from .surface import DrawingSurface, LinearGradient, Paint, Shadow, create_surface

logger = logging.getLogger(__name__)

SHADOW_COLOR = (0, 0, 0, 77)
"rgba(0, 0, 0, 0.3)"

SHADOW_CASTER_COLOR = (0, 0, 0, 255)

SurfaceFactory = Callable[[int, int], DrawingSurface]
"Allocates a surface. Its ``color_parser`` attribute, if present, validates the colors"
StageCallback = Callable[["RenderStage"], None]


class RenderStage(str, Enum):
    """Steps of a single render."""
    VALIDATE_CONFIG = "validate_config"
    COMPUTE_CANVAS_EXTENT = "compute_canvas_extent"
    FILL_BACKGROUND = "fill_background"
    COMPUTE_PLACEMENT = "compute_placement"
    DRAW_SHADOW = "draw_shadow"
    DRAW_IMAGE = "draw_image"
    DRAW_BORDER = "draw_border"
    CROP_AND_ENCODE = "crop_and_encode"
    DONE = "done"
    FAILED = "failed"


def validate_frame_colors(config: FrameConfig, parser: ColorParser | None = None) -> None:
    """
    Check every color the configuration will actually draw with.

    :param config: The frame configuration
    :param parser: Color parser of the target surface
    :raises InvalidColorError: For the first unrenderable color, naming its field
    """
    if config.background_type == BackgroundType.GRADIENT:
        validate_color(config.background_gradient_start, "backgroundGradientStart", parser)
        validate_color(config.background_gradient_end, "backgroundGradientEnd", parser)
    else:
        validate_color(config.background, "background", parser)
    if config.border:
        validate_color(config.border_color, "borderColor", parser)


def background_paint(config: FrameConfig, area: Rect) -> Paint:
    """
    The paint filling the frame background.

    Gradient lines span the image area, not the whole frame, so padding
    shows the end colors.

    :param config: The frame configuration
    :param area: The (offset adjusted) image area
    """
    if config.background_type != BackgroundType.GRADIENT:
        return config.background
    direction = config.background_gradient_direction
    if direction == GradientDirection.HORIZONTAL:
        x1, y1 = area.right, area.y
    elif direction == GradientDirection.DIAGONAL:
        x1, y1 = area.right, area.bottom
    else:
        x1, y1 = area.x, area.bottom
    return LinearGradient.two_stop(
        area.x, area.y, x1, y1,
        config.background_gradient_start,
        config.background_gradient_end,
    )


def compose_frame(
    source: SourceImage,
    config: FrameConfig,
    surface_factory: SurfaceFactory = create_surface,
    on_stage: StageCallback | None = None,
    color_parser: ColorParser | None = None,
) -> DrawingSurface:
    """
    Draw a frame and return the cropped, unencoded surface.

    :param source: The decoded source image
    :param config: The frame configuration
    :param surface_factory: Allocates working surfaces
    :param on_stage: Called with every stage entered
    :param color_parser: Parser the surfaces use, by default the factory's
        ``color_parser`` attribute or Pillow's
    :return: A new surface of exactly ``config.width x config.height``. The
        caller owns and must close it.
    :raises InvalidColorError: If a configured color is not renderable
    :raises GradientColorError: If the gradient can't be built
    :raises SurfaceUnavailableError: If no surface can be allocated
    """

    def enter(stage: RenderStage) -> None:
        logger.debug("Render stage: %s", stage.value)
        if on_stage is not None:
            on_stage(stage)

    enter(RenderStage.VALIDATE_CONFIG)
    validate_frame_colors(config, color_parser or getattr(surface_factory, "color_parser", None))

    enter(RenderStage.COMPUTE_CANVAS_EXTENT)
    extent = shadow_extent(config)
    canvas = surface_factory(config.width + 2 * extent, config.height + 2 * extent)
    framed = None
    try:
        enter(RenderStage.FILL_BACKGROUND)
        area = image_area(config, offset=extent)
        canvas.fill_rect(
            Rect(extent, extent, config.width, config.height),
            background_paint(config, area),
        )

        enter(RenderStage.COMPUTE_PLACEMENT)
        placement = resolve_placement(
            source.width, source.height,
            area.width, area.height, area.x, area.y,
            config.fit,
        )
        if placement.is_empty:
            logger.debug("Image area is empty, rendering the background only")
        else:
            path = placement_path(placement, config.border_radius)
            if config.shadow:
                enter(RenderStage.DRAW_SHADOW)
                spread = config.shadow_spread
                canvas.fill_path(
                    path, SHADOW_CASTER_COLOR,
                    shadow=Shadow(SHADOW_COLOR, blur=spread, offset_x=0.0,
                                  offset_y=shadow_offset_y(spread)),
                )

            enter(RenderStage.DRAW_IMAGE)
            canvas.draw_image(source, placement, clip=path if path.radius > 0 else None)

            if config.border:
                enter(RenderStage.DRAW_BORDER)
                canvas.stroke_path(path, config.border_color, config.border_width,
                                   config.border_style.dash)

        enter(RenderStage.CROP_AND_ENCODE)
        if extent:
            framed = canvas.crop(Rect(extent, extent, config.width, config.height))
        else:
            framed = canvas
    finally:
        if framed is not canvas:
            canvas.close()
    return framed


def encode_frame(surface: DrawingSurface, config: FrameConfig) -> RenderResult:
    """
    Encode a composed frame in the configured format.

    :raises EncodeError: If the surface can't be encoded
    """
    quality = jpeg_quality() if config.format == ExportFormat.JPG else None
    data = surface.encode(config.format, quality)
    return RenderResult(
        data=data,
        format=config.format,
        width=surface.width,
        height=surface.height,
        quality=quality,
    )


def render_frame(
    source: SourceImage,
    config: FrameConfig,
    surface_factory: SurfaceFactory = create_surface,
    on_stage: StageCallback | None = None,
    color_parser: ColorParser | None = None,
) -> RenderResult:
    """
    Render and encode one framed image.

    :param source: The decoded source image
    :param config: The frame configuration
    :param surface_factory: Allocates working surfaces
    :param on_stage: Called with every stage entered, ``DONE`` or ``FAILED`` last
    :param color_parser: Parser the surfaces use, see :func:`compose_frame`
    :return: The encoded frame
    :raises FrameError: Any of the compositor's failure modes
    """
    try:
        surface = compose_frame(source, config, surface_factory=surface_factory, on_stage=on_stage,
                                color_parser=color_parser)
        try:
            result = encode_frame(surface, config)
        finally:
            surface.close()
    except FrameError as e:
        logger.debug("Render failed: %s", e)
        if on_stage is not None:
            on_stage(RenderStage.FAILED)
        raise
    if on_stage is not None:
        on_stage(RenderStage.DONE)
    logger.debug("Rendered %r", result)
    return result


class FrameRenderer:
    """
    Renders frames with a fixed surface factory.

    Example:
        >>> renderer = FrameRenderer()
        >>> result = renderer.render(source, FrameConfig(padding=40, shadow=True))
        >>> result.mime_type
        'image/png'
    """

    def __init__(self, surface_factory: SurfaceFactory = create_surface,
                 color_parser: ColorParser | None = None):
        self.surface_factory = surface_factory
        self.color_parser = color_parser

    def compose(self, source: SourceImage, config: FrameConfig,
                on_stage: StageCallback | None = None) -> DrawingSurface:
        return compose_frame(source, config, self.surface_factory, on_stage, self.color_parser)

    def render(self, source: SourceImage, config: FrameConfig,
               on_stage: StageCallback | None = None) -> RenderResult:
        return render_frame(source, config, self.surface_factory, on_stage, self.color_parser)
