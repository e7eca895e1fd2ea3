"""
Frame configuration model.

A :class:`FrameConfig` is created by whatever owns the UI state and is fully
determined at the start of a render. It is immutable: use
:meth:`FrameConfig.with_updates` to derive a changed copy.

Serialization uses camelCase keys so a configuration object coming from a
browser or a JSON file (``backgroundType``, ``borderRadius``, ...) can be
validated directly. Snake case names are accepted as well.

Colors are plain strings here. They are validated eagerly by the compositor
so that a bad value is reported with its field name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BackgroundType(str, Enum):
    """Fill strategy of the frame background."""
    SOLID = "solid"
    GRADIENT = "gradient"


class GradientDirection(str, Enum):
    """Axis of a two-stop background gradient."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL = "diagonal"


class FitMode(str, Enum):
    """Scaling policy of the source image inside the image area."""
    CONTAIN = "contain"  # no cropping, letterboxed
    COVER = "cover"  # fills the area, excess overflows


class BorderStyle(str, Enum):
    """Dash pattern of the border stroke."""
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"

    @property
    def dash(self) -> tuple[float, ...]:
        """Canvas style dash array (on, off, ...) for this style."""
        return _DASH_PATTERNS[self]


_DASH_PATTERNS = {
    BorderStyle.SOLID: (),
    BorderStyle.DASHED: (8.0, 4.0),
    BorderStyle.DOTTED: (2.0, 4.0),
}


class ExportFormat(str, Enum):
    """Output encoding."""
    PNG = "png"
    JPG = "jpg"


class FrameConfig(BaseModel):
    """
    Immutable configuration of a single frame render.

    Example:
        >>> config = FrameConfig(width=1080, height=1350, padding=40, borderRadius=24)
        >>> config.border_radius
        24
        >>> config.with_updates(fit="cover").fit
        <FitMode.COVER: 'cover'>
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra='ignore',
    )

    width: int = Field(default=1080, gt=0)
    height: int = Field(default=1080, gt=0)

    background: str = Field(default='#ffffff')
    background_type: BackgroundType = Field(default=BackgroundType.SOLID, alias='backgroundType')
    background_gradient_start: str = Field(default='#ffffff', alias='backgroundGradientStart')
    background_gradient_end: str = Field(default='#000000', alias='backgroundGradientEnd')
    background_gradient_direction: GradientDirection = Field(
        default=GradientDirection.VERTICAL, alias='backgroundGradientDirection'
    )

    padding: int = Field(default=0, ge=0)
    fit: FitMode = Field(default=FitMode.CONTAIN)
    border_radius: int = Field(default=0, ge=0, alias='borderRadius')

    shadow: bool = Field(default=False)
    shadow_spread: int = Field(default=20, ge=0, alias='shadowSpread')

    border: bool = Field(default=False)
    border_color: str = Field(default='#000000', alias='borderColor')
    border_width: int = Field(default=2, gt=0, alias='borderWidth')
    border_style: BorderStyle = Field(default=BorderStyle.SOLID, alias='borderStyle')

    format: ExportFormat = Field(default=ExportFormat.PNG)

    @property
    def image_area_width(self) -> int:
        """Width of the frame inside the padding (may be non-positive)."""
        return self.width - 2 * self.padding

    @property
    def image_area_height(self) -> int:
        """Height of the frame inside the padding (may be non-positive)."""
        return self.height - 2 * self.padding

    def with_updates(self, **changes: Any) -> FrameConfig:
        """
        Return a validated copy with some fields replaced.

        Accepts both snake_case and camelCase field names.
        """
        aliases = {f.alias: name for name, f in FrameConfig.model_fields.items() if f.alias}
        data = self.model_dump(by_alias=False)
        data.update({aliases.get(key, key): value for key, value in changes.items()})
        return FrameConfig.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON compatible dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode='json')

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FrameConfig:
        """Validate a configuration dict (camelCase or snake_case keys)."""
        return cls.model_validate(data)

    @classmethod
    def from_preset(cls, name: str, **overrides: Any) -> FrameConfig:
        """
        Create a configuration sized after one of the :data:`FRAME_PRESETS`.

        :param name: Preset name, case-insensitive (e.g. ``"portrait"``)
        :param overrides: Further field values
        :return: The configuration
        """
        preset = get_preset(name)
        return cls.model_validate({"width": preset.width, "height": preset.height, **overrides})


@dataclass(frozen=True)
class FramePreset:
    """A named output size."""
    name: str
    width: int
    height: int


FRAME_PRESETS: list[FramePreset] = [
    FramePreset("Square", 1080, 1080),
    FramePreset("Portrait", 1080, 1350),
    FramePreset("Landscape", 1080, 566),
]
"Output sizes offered by the frame controls"


def get_preset(name: str) -> FramePreset:
    """
    Look up a preset by name.

    :param name: Preset name, case-insensitive
    :return: The preset
    :raises ValueError: If no preset has this name
    """
    for preset in FRAME_PRESETS:
        if preset.name.lower() == name.lower():
            return preset
    available = ", ".join(p.name for p in FRAME_PRESETS)
    raise ValueError(f"Unknown frame preset: {name}. Available: {available}")


DEFAULT_FRAME_CONFIG = FrameConfig()
"The configuration a new session starts with"
