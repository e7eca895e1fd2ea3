"""
Command line front end.

Frames one or more image files and writes the result::

    python -m framestag photo.jpg --preset portrait --padding 60 --radius 24 --shadow
    python -m framestag *.png --gradient "#ffecd2" "#fcb69f" --direction diagonal -o out/

A single input is rendered in-process and written as one file, several
inputs are rendered on a background worker and written as one zip archive.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Sequence

from pydantic import ValidationError

from .compositor import render_frame
from .config import settings
from .exceptions import FrameError
from .export import export_single, write_export
from .frame_config import (
    FRAME_PRESETS,
    BorderStyle,
    ExportFormat,
    FitMode,
    FrameConfig,
    GradientDirection,
    get_preset,
)
from .source import load_source
from .worker import BulkProcessor, RenderTask

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="framestag",
        description="Add a background, padding, rounded corners, a drop shadow and a border to images",
    )
    parser.add_argument("inputs", nargs="+", metavar="INPUT", help="Image files to frame")
    parser.add_argument(
        "--preset",
        choices=[p.name.lower() for p in FRAME_PRESETS],
        help="Output size preset",
    )
    parser.add_argument("--width", type=int, help="Output width in pixels")
    parser.add_argument("--height", type=int, help="Output height in pixels")
    parser.add_argument("--background", help="Solid background color")
    parser.add_argument(
        "--gradient",
        nargs=2,
        metavar=("START", "END"),
        help="Use a gradient background from START to END color",
    )
    parser.add_argument(
        "--direction",
        choices=[d.value for d in GradientDirection],
        help="Gradient direction",
    )
    parser.add_argument("--padding", type=int, help="Padding in pixels")
    parser.add_argument("--fit", choices=[f.value for f in FitMode], help="Image fit mode")
    parser.add_argument("--radius", type=int, help="Corner radius in pixels")
    parser.add_argument("--shadow", action="store_true", default=None, help="Enable the drop shadow")
    parser.add_argument("--spread", type=int, help="Shadow spread in pixels")
    parser.add_argument("--border", action="store_true", default=None, help="Enable the border")
    parser.add_argument("--border-color", help="Border color")
    parser.add_argument("--border-width", type=int, help="Border width in pixels")
    parser.add_argument(
        "--border-style",
        choices=[s.value for s in BorderStyle],
        help="Border style",
    )
    parser.add_argument(
        "--format", "-f",
        choices=[f.value for f in ExportFormat],
        help="Output format",
    )
    parser.add_argument("--config", "-c", metavar="JSON_FILE", help="Frame configuration file")
    parser.add_argument("--output", "-o", default=".", help="Output directory (default: current)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def config_from_args(args: argparse.Namespace) -> FrameConfig:
    """
    Build the frame configuration from parsed arguments.

    Precedence: command line options > configuration file > preset > defaults.

    :raises ValueError: If the configuration file can't be read or is invalid
    """
    data: dict[str, Any] = {}
    if args.preset:
        preset = get_preset(args.preset)
        data.update(width=preset.width, height=preset.height)
    if args.config:
        try:
            with open(args.config, encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Can't read configuration {args.config}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration {args.config} must be a JSON object")
        data.update(FrameConfig.from_dict({**data, **loaded}).model_dump())

    options = {
        "width": args.width,
        "height": args.height,
        "background": args.background,
        "background_gradient_direction": args.direction,
        "padding": args.padding,
        "fit": args.fit,
        "border_radius": args.radius,
        "shadow": args.shadow,
        "shadow_spread": args.spread,
        "border": args.border,
        "border_color": args.border_color,
        "border_width": args.border_width,
        "border_style": args.border_style,
        "format": args.format,
    }
    data.update({k: v for k, v in options.items() if v is not None})
    if args.gradient:
        data.update(
            background_type="gradient",
            background_gradient_start=args.gradient[0],
            background_gradient_end=args.gradient[1],
        )
    return FrameConfig.from_dict(data)


def _render_single(path: str, config: FrameConfig, output_dir: str) -> int:
    try:
        source = load_source(path)
        result = render_frame(source, config)
    except FrameError as e:
        logger.error("Export failed: %s", e)
        return 1
    target = write_export([export_single(result, source.name)], output_dir)
    print(target)
    return 0


def _render_bulk(paths: Sequence[str], config: FrameConfig, output_dir: str) -> int:
    tasks = []
    for index, path in enumerate(paths):
        name = os.path.basename(path)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            logger.warning("Can't read %s: %s", path, e)
            data = b""
        tasks.append(RenderTask(id=f"task-{index}", data=data, name=name, config=config))

    def progress(done: int, total: int) -> None:
        logger.info("Processed %d/%d images", done, total)

    batch = BulkProcessor().process(tasks, on_progress=progress)
    if batch.all_failed:
        logger.error("Bulk export failed: All images failed to process")
        return 1
    target = write_export(batch.export_files(), output_dir, archive=True)
    print(target)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line front end and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = config_from_args(args)
    except (ValidationError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    if len(args.inputs) == 1:
        return _render_single(args.inputs[0], config, args.output)
    return _render_bulk(args.inputs, config, args.output)


if __name__ == "__main__":
    sys.exit(main())
