"""
Tests the frame configuration model and presets
"""

import pytest
from pydantic import ValidationError

from framestag import (
    DEFAULT_FRAME_CONFIG,
    FRAME_PRESETS,
    BackgroundType,
    BorderStyle,
    ExportFormat,
    FitMode,
    FrameConfig,
    GradientDirection,
    get_preset,
)


def test_defaults():
    config = FrameConfig()
    assert (config.width, config.height) == (1080, 1080)
    assert config.background == "#ffffff"
    assert config.background_type == BackgroundType.SOLID
    assert config.background_gradient_direction == GradientDirection.VERTICAL
    assert config.fit == FitMode.CONTAIN
    assert config.shadow is False and config.shadow_spread == 20
    assert config.border is False
    assert config.border_color == "#000000" and config.border_width == 2
    assert config.border_style == BorderStyle.SOLID
    assert config.format == ExportFormat.PNG
    assert DEFAULT_FRAME_CONFIG == config


class TestSerialization:

    def test_camel_case_input(self):
        config = FrameConfig.from_dict({
            "width": 1080, "height": 1350,
            "backgroundType": "gradient",
            "backgroundGradientStart": "#ffecd2",
            "borderRadius": 24,
            "shadowSpread": 35,
            "borderStyle": "dashed",
        })
        assert config.background_type == BackgroundType.GRADIENT
        assert config.background_gradient_start == "#ffecd2"
        assert config.border_radius == 24
        assert config.shadow_spread == 35
        assert config.border_style == BorderStyle.DASHED

    def test_snake_case_input(self):
        assert FrameConfig(border_radius=12).border_radius == 12

    def test_to_dict_round_trip(self):
        config = FrameConfig(padding=40, shadow=True, format="jpg")
        data = config.to_dict()
        assert data["borderRadius"] == 0
        assert data["backgroundGradientDirection"] == "vertical"
        assert data["format"] == "jpg"
        assert FrameConfig.from_dict(data) == config

    def test_unknown_keys_ignored(self):
        assert FrameConfig.from_dict({"theme": "dark"}) == FrameConfig()


class TestValidation:

    @pytest.mark.parametrize("field, value", [
        ("width", 0),
        ("height", -1),
        ("padding", -5),
        ("border_width", 0),
        ("fit", "stretch"),
        ("format", "gif"),
        ("border_style", "wavy"),
    ])
    def test_rejected(self, field, value):
        with pytest.raises(ValidationError):
            FrameConfig(**{field: value})

    def test_frozen(self):
        config = FrameConfig()
        with pytest.raises(ValidationError):
            config.padding = 10

    def test_with_updates(self):
        config = FrameConfig(padding=10)
        updated = config.with_updates(fit="cover", borderRadius=8)
        assert updated.fit == FitMode.COVER
        assert updated.border_radius == 8
        assert updated.padding == 10
        assert config.fit == FitMode.CONTAIN


def test_border_dash_patterns():
    assert BorderStyle.SOLID.dash == ()
    assert BorderStyle.DASHED.dash == (8.0, 4.0)
    assert BorderStyle.DOTTED.dash == (2.0, 4.0)


class TestPresets:

    def test_sizes(self):
        sizes = {p.name: (p.width, p.height) for p in FRAME_PRESETS}
        assert sizes == {"Square": (1080, 1080), "Portrait": (1080, 1350), "Landscape": (1080, 566)}

    def test_lookup(self):
        assert get_preset("PORTRAIT").height == 1350
        with pytest.raises(ValueError):
            get_preset("banner")

    def test_from_preset(self):
        config = FrameConfig.from_preset("landscape", padding=20)
        assert (config.width, config.height, config.padding) == (1080, 566, 20)
