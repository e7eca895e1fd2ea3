"""
Interactive preview path.

A :class:`PreviewSession` keeps the current source image and frame
configuration of one editing session and re-renders the preview whenever
either changes. Configuration changes are debounced: a burst of changes
(e.g. dragging a slider) settles into a single render.

Rendering runs in worker threads via :func:`asyncio.to_thread`, so the event
loop stays responsive. Decoding and encoding are the suspension points. A
newer request does not interrupt an older one, it invalidates it instead:
every attempt holds a :class:`RenderToken` and its result is only published
if no newer attempt started in the meantime.

Example:
    >>> session = PreviewSession(on_result=show)
    >>> await session.set_source(file_bytes, "photo.jpg")
    >>> await session.render_now()
    >>> await session.update_config(session.config.with_updates(padding=60))
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .compositor import SurfaceFactory, compose_frame, encode_frame
from .config import settings
from .exceptions import DecodeError, FrameError
from .formats import RenderResult
from .frame_config import DEFAULT_FRAME_CONFIG, FrameConfig
from .source import SourceImage, decode_source
from .surface import create_surface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderToken:
    """Identifies one render attempt. Only the newest token may publish."""
    generation: int


@dataclass(frozen=True)
class PreviewResult:
    """Outcome of a published render attempt.

    :param token: The attempt's token
    :param config: The configuration that was rendered
    :param result: The encoded frame, None if the attempt failed
    :param error: A user presentable error message, None on success
    :param source_name: Name of the rendered source image
    """
    token: RenderToken
    config: FrameConfig
    result: Optional[RenderResult] = None
    error: Optional[str] = None
    source_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


ResultCallback = Callable[[PreviewResult], Any]


class PreviewSession:
    """
    Debounced, soft-cancelling preview renderer of a single session.

    :param config: Initial frame configuration
    :param on_result: Called with every published :class:`PreviewResult`
    :param debounce: Settle time of :meth:`update_config` in seconds,
        ``settings.PREVIEW_DEBOUNCE_S`` by default
    :param surface_factory: Allocates the render surfaces
    """

    def __init__(
        self,
        config: FrameConfig | None = None,
        on_result: ResultCallback | None = None,
        debounce: float | None = None,
        surface_factory: SurfaceFactory = create_surface,
    ):
        self._config = config or DEFAULT_FRAME_CONFIG
        self.on_result = on_result
        self.debounce = settings.PREVIEW_DEBOUNCE_S if debounce is None else debounce
        self._surface_factory = surface_factory
        self._source: SourceImage | None = None
        self._generation = 0
        self._pending: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self.latest: PreviewResult | None = None
        self.render_count = 0

    @property
    def config(self) -> FrameConfig:
        return self._config

    @property
    def source(self) -> SourceImage | None:
        return self._source

    @property
    def generation(self) -> int:
        return self._generation

    def _next_token(self) -> RenderToken:
        self._generation += 1
        return RenderToken(self._generation)

    def is_current(self, token: RenderToken) -> bool:
        """True if no newer attempt started after ``token``."""
        return not self._closed and token.generation == self._generation

    def _publish(self, preview: PreviewResult) -> PreviewResult:
        self.latest = preview
        self.render_count += 1
        if self.on_result is not None:
            self.on_result(preview)
        return preview

    def _cancel_pending(self) -> None:
        if self._pending is not None and self._pending is not asyncio.current_task():
            self._pending.cancel()
        self._pending = None

    async def set_source(self, data: bytes | SourceImage, name: str | None = None) -> SourceImage | None:
        """
        Replace the source image.

        Encoded data is decoded once in a worker thread, the decoded image is
        kept for all following renders.

        :param data: Encoded file content or an already decoded image
        :param name: File name
        :return: The decoded image, None if decoding failed or a newer
            request superseded this one
        """
        token = self._next_token()
        self._cancel_pending()
        if isinstance(data, SourceImage):
            source = data
        else:
            try:
                source = await asyncio.to_thread(decode_source, data, name)
            except DecodeError as e:
                logger.warning("Preview decode failed: %s", e)
                if self.is_current(token):
                    self._publish(PreviewResult(token, self._config, error=str(e), source_name=name))
                return None
        if not self.is_current(token):
            logger.debug("Discarding stale decode of %s", name)
            return None
        if source.name is None:
            source.name = name
        self._source = source
        return source

    async def load(self, data: bytes | SourceImage, name: str | None = None) -> PreviewResult | None:
        """Set the source and render it immediately."""
        if await self.set_source(data, name) is None:
            return self.latest if self.latest is not None and self.latest.error else None
        return await self.render_now()

    async def update_config(self, config: FrameConfig | dict | None = None, **changes: Any) -> None:
        """
        Change the configuration and schedule a debounced render.

        A newer call restarts the settle timer and invalidates any render in
        flight.

        :param config: The new configuration (or a dict of its fields)
        :param changes: Individual field updates applied on top
        """
        if isinstance(config, dict):
            config = FrameConfig.from_dict(config)
        new_config = config or self._config
        if changes:
            new_config = new_config.with_updates(**changes)
        self._config = new_config
        self._next_token()
        self._cancel_pending()
        if self._closed:
            return
        task = asyncio.create_task(self._render_after(self.debounce))
        self._pending = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _render_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # past the settle time the render can no longer be cancelled, only superseded
        self._pending = None
        await self.render_now()

    async def render_now(self) -> PreviewResult | None:
        """
        Render the current source with the current configuration.

        :return: The published result, None if there is no source yet or a
            newer attempt superseded this one
        """
        self._cancel_pending()
        token = self._next_token()
        source = self._source
        config = self._config
        if source is None:
            return None
        name = source.name
        try:
            surface = await asyncio.to_thread(
                compose_frame, source, config, self._surface_factory
            )
            try:
                if not self.is_current(token):
                    logger.debug("Discarding stale render %d before encoding", token.generation)
                    return None
                result = await asyncio.to_thread(encode_frame, surface, config)
            finally:
                surface.close()
        except FrameError as e:
            if not self.is_current(token):
                return None
            logger.warning("Preview render failed: %s", e)
            return self._publish(PreviewResult(token, config, error=str(e), source_name=name))
        if not self.is_current(token):
            logger.debug("Discarding stale render %d", token.generation)
            return None
        return self._publish(PreviewResult(token, config, result=result, source_name=name))

    async def wait_idle(self) -> None:
        """Wait until all scheduled renders finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending renders and release the cached source image."""
        self._closed = True
        self._cancel_pending()
        self._source = None
        await self.wait_idle()

    async def __aenter__(self) -> PreviewSession:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
