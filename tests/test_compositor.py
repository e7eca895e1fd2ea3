"""
Tests the layer compositor
"""

import io

import numpy as np
import PIL.Image
import PIL.ImageColor
import pytest

from framestag import (
    EncodeError,
    FrameConfig,
    FrameRenderer,
    GradientColorError,
    InvalidColorError,
    PilSurface,
    RenderStage,
    SurfaceUnavailableError,
    compose_frame,
    render_frame,
    validate_frame_colors,
)
from framestag.compositor import background_paint
from framestag.geometry import Rect
from framestag.surface import LinearGradient

WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)


class RecordingFactory:
    """Surface factory remembering every surface it allocated."""

    def __init__(self, surface_class=PilSurface):
        self.surface_class = surface_class
        self.surfaces = []

    def __call__(self, width, height):
        surface = self.surface_class(width, height)
        self.surfaces.append(surface)
        return surface


def hex_only_parser(color):
    if not color.startswith("#"):
        raise ValueError(f"Unsupported color: {color}")
    return PIL.ImageColor.getrgb(color)


class HexOnlyFactory(RecordingFactory):
    """Allocates surfaces that only understand hex colors."""

    def __init__(self, advertise_parser=True):
        super().__init__()
        if advertise_parser:
            self.color_parser = hex_only_parser

    def __call__(self, width, height):
        surface = PilSurface(width, height, color_parser=hex_only_parser)
        self.surfaces.append(surface)
        return surface


class FailingEncodeSurface(PilSurface):

    def encode(self, fmt, quality=None):
        raise EncodeError("Failed to create blob")

    def crop(self, rect):
        cropped = super().crop(rect)
        return FailingEncodeSurface.from_image(cropped.image)


class TestPlacement:

    def test_contain_letterbox(self, red_landscape, decode):
        result = render_frame(red_landscape, FrameConfig(width=1080, height=1080, fit="contain"))
        assert (result.width, result.height) == (1080, 1080)
        pixels = decode(result.data)
        assert pixels.shape == (1080, 1080, 4)
        assert tuple(pixels[269, 540]) == WHITE
        assert tuple(pixels[270, 540]) == RED
        assert tuple(pixels[809, 540]) == RED
        assert tuple(pixels[810, 540]) == WHITE

    def test_cover_fills_frame(self, red_landscape, decode):
        result = render_frame(red_landscape, FrameConfig(width=1080, height=1080, fit="cover"))
        pixels = decode(result.data)
        assert (pixels == RED).all()

    def test_cover_overflows_into_padding(self, red_landscape, decode):
        config = FrameConfig(width=1080, height=1080, padding=40, fit="cover")
        pixels = decode(render_frame(red_landscape, config).data)
        # the overflowing axis draws over the padding, the other keeps it
        assert tuple(pixels[540, 10]) == RED
        assert tuple(pixels[540, 1070]) == RED
        assert tuple(pixels[10, 540]) == WHITE
        assert tuple(pixels[1070, 540]) == WHITE

    def test_radius_clamped_to_circle(self, red_square, decode):
        config = FrameConfig(width=100, height=100, border_radius=1000)
        pixels = decode(render_frame(red_square, config).data)
        assert tuple(pixels[0, 0]) == WHITE
        assert tuple(pixels[99, 0]) == WHITE
        assert tuple(pixels[50, 50]) == RED

    def test_padding(self, red_square, decode):
        config = FrameConfig(width=200, height=200, padding=50, background="#0000ff")
        pixels = decode(render_frame(red_square, config).data)
        assert tuple(pixels[49, 100]) == (0, 0, 255, 255)
        assert tuple(pixels[50, 100]) == RED
        assert tuple(pixels[149, 100]) == RED
        assert tuple(pixels[150, 100]) == (0, 0, 255, 255)

    def test_degenerate_area_renders_background(self, red_square, decode):
        config = FrameConfig(width=100, height=100, padding=60, background="#00ff00",
                             shadow=True, border=True)
        pixels = decode(render_frame(red_square, config).data)
        assert (pixels == (0, 255, 0, 255)).all()


class TestColorValidation:

    def test_invalid_background(self, red_square):
        factory = RecordingFactory()
        with pytest.raises(InvalidColorError) as exc_info:
            render_frame(red_square, FrameConfig(background="notacolor"), surface_factory=factory)
        assert exc_info.value.field == "background"
        assert 'Invalid background: "notacolor"' in str(exc_info.value)
        # rejected before anything was drawn
        assert factory.surfaces == []

    def test_invalid_gradient_stop(self, red_square):
        config = FrameConfig(background_type="gradient", background_gradient_end="nope")
        with pytest.raises(InvalidColorError) as exc_info:
            render_frame(red_square, config)
        assert exc_info.value.field == "backgroundGradientEnd"

    def test_out_of_range_channels_are_clamped(self, red_square, decode):
        config = FrameConfig(width=50, height=50, padding=10, background="rgb(300, 0, 0)",
                             border=True, border_color="rgb(0, 0, 999)")
        pixels = decode(render_frame(red_square, config).data)
        assert tuple(pixels[0, 0]) == RED
        assert tuple(pixels[25, 10, :3]) == (0, 0, 255)

    def test_factory_parser_validates(self, red_square):
        factory = HexOnlyFactory()
        with pytest.raises(InvalidColorError) as exc_info:
            render_frame(red_square, FrameConfig(width=50, height=50, background="red"),
                         surface_factory=factory)
        assert exc_info.value.field == "background"
        assert factory.surfaces == []
        # hex colors pass and render
        render_frame(red_square, FrameConfig(width=50, height=50, background="#ff0000"),
                     surface_factory=factory)

    def test_explicit_parser_validates(self, red_square):
        renderer = FrameRenderer(color_parser=hex_only_parser)
        with pytest.raises(InvalidColorError):
            renderer.render(red_square, FrameConfig(border=True, border_color="black"))

    def test_surface_rejects_gradient_stop(self, red_square):
        factory = HexOnlyFactory(advertise_parser=False)
        config = FrameConfig(width=50, height=50, background_type="gradient",
                             background_gradient_start="red", background_gradient_end="#0000ff")
        with pytest.raises(GradientColorError) as exc_info:
            render_frame(red_square, config, surface_factory=factory)
        assert exc_info.value.start == "red"
        assert all(s.closed for s in factory.surfaces)

    def test_inactive_colors_are_ignored(self):
        validate_frame_colors(FrameConfig(border=False, border_color="nope"))
        validate_frame_colors(FrameConfig(background_type="gradient", background="nope"))
        with pytest.raises(InvalidColorError) as exc_info:
            validate_frame_colors(FrameConfig(border=True, border_color="nope"))
        assert exc_info.value.field == "borderColor"


class TestShadow:

    @pytest.mark.parametrize("spread", [0, 1, 20, 57, 100])
    def test_output_size_is_exact(self, red_square, decode, spread):
        config = FrameConfig(width=300, height=200, padding=40, shadow=True, shadow_spread=spread)
        result = render_frame(red_square, config)
        assert (result.width, result.height) == (300, 200)
        assert decode(result.data).shape == (200, 300, 4)

    def test_shadow_darkens_below_image(self, red_square, decode):
        base = FrameConfig(width=200, height=200, padding=50)
        plain = decode(render_frame(red_square, base).data)
        shadowed = decode(render_frame(red_square, base.with_updates(shadow=True, shadow_spread=20)).data)
        # just below the image
        assert shadowed[155, 100, 0] < plain[155, 100, 0]
        # the image itself is unchanged
        assert tuple(shadowed[100, 100]) == RED
        # far corner untouched
        assert tuple(shadowed[0, 0]) == WHITE

    def test_canvas_extended_and_cropped(self, red_square):
        factory = RecordingFactory()
        config = FrameConfig(width=200, height=100, shadow=True, shadow_spread=20)
        render_frame(red_square, config, surface_factory=factory)
        working = factory.surfaces[0]
        assert working.closed


class TestBackground:

    def test_gradient_spans_image_area(self, red_square, decode):
        config = FrameConfig(
            width=400, height=400, padding=100,
            background_type="gradient",
            background_gradient_start="#ff0000",
            background_gradient_end="#0000ff",
            background_gradient_direction="horizontal",
        )
        pixels = decode(render_frame(red_square, config).data)
        # padding left of the gradient line shows the start color, right of it the end color
        assert tuple(pixels[20, 50]) == (255, 0, 0, 255)
        assert tuple(pixels[20, 350]) == (0, 0, 255, 255)
        middle = pixels[20, 200]
        assert 100 < middle[0] < 155 and 100 < middle[2] < 155

    @pytest.mark.parametrize("direction, end", [
        ("horizontal", (300, 100)),
        ("vertical", (100, 300)),
        ("diagonal", (300, 300)),
    ])
    def test_gradient_line(self, direction, end):
        config = FrameConfig(background_type="gradient", background_gradient_direction=direction)
        paint = background_paint(config, Rect(100, 100, 200, 200))
        assert isinstance(paint, LinearGradient)
        assert (paint.x0, paint.y0) == (100, 100)
        assert (paint.x1, paint.y1) == end

    def test_solid(self):
        assert background_paint(FrameConfig(background="#123456"), Rect(0, 0, 1, 1)) == "#123456"


class TestBorder:

    def test_border_drawn_on_placement_edge(self, red_square, decode):
        config = FrameConfig(width=200, height=200, padding=50, border=True,
                             border_color="#000000", border_width=4)
        pixels = decode(render_frame(red_square, config).data)
        # stroke is centered on the edge at x=50
        for x, expected in ((48, (0, 0, 0, 255)), (51, (0, 0, 0, 255)), (47, WHITE), (52, RED)):
            assert np.abs(pixels[100, x].astype(int) - expected).max() <= 3

    def test_dotted_border_has_gaps(self, red_square, decode):
        config = FrameConfig(width=200, height=200, padding=50, border=True,
                             border_width=2, border_style="dotted")
        pixels = decode(render_frame(red_square, config).data)
        top_row = pixels[50, 50:150, :3]
        dark = (top_row.sum(axis=1) < 100).sum()
        assert 0 < dark < 100


class TestStagesAndResources:

    def test_stage_order(self, red_square):
        stages = []
        config = FrameConfig(width=200, height=200, padding=20, shadow=True, border=True)
        render_frame(red_square, config, on_stage=stages.append)
        assert stages == [
            RenderStage.VALIDATE_CONFIG,
            RenderStage.COMPUTE_CANVAS_EXTENT,
            RenderStage.FILL_BACKGROUND,
            RenderStage.COMPUTE_PLACEMENT,
            RenderStage.DRAW_SHADOW,
            RenderStage.DRAW_IMAGE,
            RenderStage.DRAW_BORDER,
            RenderStage.CROP_AND_ENCODE,
            RenderStage.DONE,
        ]

    def test_optional_stages_skipped(self, red_square):
        stages = []
        render_frame(red_square, FrameConfig(width=50, height=50), on_stage=stages.append)
        assert RenderStage.DRAW_SHADOW not in stages
        assert RenderStage.DRAW_BORDER not in stages
        assert stages[-1] == RenderStage.DONE

    def test_failed_stage(self, red_square):
        stages = []
        with pytest.raises(InvalidColorError):
            render_frame(red_square, FrameConfig(background="bad"), on_stage=stages.append)
        assert stages == [RenderStage.VALIDATE_CONFIG, RenderStage.FAILED]

    def test_surfaces_closed_on_success(self, red_square):
        factory = RecordingFactory()
        render_frame(red_square, FrameConfig(width=100, height=100), surface_factory=factory)
        assert factory.surfaces
        assert all(s.closed for s in factory.surfaces)

    def test_surfaces_closed_on_encode_failure(self, red_square):
        factory = RecordingFactory(FailingEncodeSurface)
        with pytest.raises(EncodeError):
            render_frame(red_square, FrameConfig(width=100, height=100), surface_factory=factory)
        assert all(s.closed for s in factory.surfaces)

    def test_surface_unavailable(self, red_square):
        def no_surface(width, height):
            raise SurfaceUnavailableError("Could not get canvas context")

        with pytest.raises(SurfaceUnavailableError):
            render_frame(red_square, FrameConfig(), surface_factory=no_surface)

    def test_compose_returns_exact_size(self, red_square):
        config = FrameConfig(width=120, height=80, shadow=True, shadow_spread=30)
        surface = compose_frame(red_square, config)
        try:
            assert (surface.width, surface.height) == (120, 80)
        finally:
            surface.close()


class TestEncoding:

    def test_png_pixel_exact(self, noise_image, decode):
        config = FrameConfig(width=64, height=48)
        result = render_frame(noise_image, config)
        assert result.mime_type == "image/png"
        assert result.quality is None
        np.testing.assert_array_equal(decode(result.data), np.asarray(noise_image.image))

    def test_jpeg(self, red_square):
        config = FrameConfig(width=300, height=200, format="jpg")
        result = render_frame(red_square, config)
        assert result.mime_type == "image/jpeg"
        assert result.extension == "jpg"
        assert result.quality == pytest.approx(0.95)
        with PIL.Image.open(io.BytesIO(result.data)) as image:
            assert image.format == "JPEG"
            assert image.size == (300, 200)

    def test_deterministic(self, noise_image):
        config = FrameConfig(width=160, height=120, padding=10, border_radius=12,
                             shadow=True, border=True, border_style="dashed")
        first = render_frame(noise_image, config).data
        second = FrameRenderer().render(noise_image, config).data
        assert first == second
