"""
FrameStag - Decorative frames for images: background, padding, rounded corners, drop shadow and border
"""

from .config import Settings, settings
from .exceptions import (
    FrameError,
    InvalidColorError,
    GradientColorError,
    SurfaceUnavailableError,
    DecodeError,
    EncodeError,
    BatchFailedError,
)
from .frame_config import (
    FrameConfig,
    BackgroundType,
    GradientDirection,
    FitMode,
    BorderStyle,
    ExportFormat,
    FramePreset,
    FRAME_PRESETS,
    DEFAULT_FRAME_CONFIG,
    get_preset,
)
from .color import is_valid_color, sanitize_color, validate_color, parse_color
from .geometry import Rect, resolve_placement, effective_radius, shadow_extent
from .path import Path, rect_path, rounded_rect_path, placement_path
from .source import SourceImage, PixelBuffer, decode_source, load_source
from .formats import RenderResult
from .surface import DrawingSurface, PilSurface, LinearGradient, Shadow, create_surface
from .compositor import (
    RenderStage,
    FrameRenderer,
    validate_frame_colors,
    compose_frame,
    encode_frame,
    render_frame,
)
from .preview import PreviewSession, PreviewResult, RenderToken
from .worker import (
    RenderWorker,
    BulkProcessor,
    RenderTask,
    TaskOutput,
    TaskError,
    BatchResult,
    handle_message,
)
from .export import (
    ExportFile,
    sanitize_filename,
    suggested_filename,
    export_single,
    build_archive,
    write_export,
)

__all__ = [
    # Settings
    "Settings",
    "settings",
    # Errors
    "FrameError",
    "InvalidColorError",
    "GradientColorError",
    "SurfaceUnavailableError",
    "DecodeError",
    "EncodeError",
    "BatchFailedError",
    # Configuration
    "FrameConfig",
    "BackgroundType",
    "GradientDirection",
    "FitMode",
    "BorderStyle",
    "ExportFormat",
    "FramePreset",
    "FRAME_PRESETS",
    "DEFAULT_FRAME_CONFIG",
    "get_preset",
    # Colors
    "is_valid_color",
    "sanitize_color",
    "validate_color",
    "parse_color",
    # Geometry and paths
    "Rect",
    "resolve_placement",
    "effective_radius",
    "shadow_extent",
    "Path",
    "rect_path",
    "rounded_rect_path",
    "placement_path",
    # Images
    "SourceImage",
    "PixelBuffer",
    "decode_source",
    "load_source",
    "RenderResult",
    # Rendering
    "DrawingSurface",
    "PilSurface",
    "LinearGradient",
    "Shadow",
    "create_surface",
    "RenderStage",
    "FrameRenderer",
    "validate_frame_colors",
    "compose_frame",
    "encode_frame",
    "render_frame",
    # Execution contexts
    "PreviewSession",
    "PreviewResult",
    "RenderToken",
    "RenderWorker",
    "BulkProcessor",
    "RenderTask",
    "TaskOutput",
    "TaskError",
    "BatchResult",
    "handle_message",
    # Export
    "ExportFile",
    "sanitize_filename",
    "suggested_filename",
    "export_single",
    "build_archive",
    "write_export",
]

__version__ = "0.1.0"
