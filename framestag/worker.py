"""
Background render path for bulk processing.

The worker side is a pure message handler, :func:`handle_message`, run by a
single :class:`RenderWorker` thread. It talks to its owner through plain
dict messages only, so the same protocol works over any transport::

    request:  {"type": "process", "id": "task-0",
               "imageData": {"data": <RGBA bytes>, "width": 640, "height": 480},
               "config": {"width": 1080, "height": 1080, "borderRadius": 24, ...}}
    response: {"type": "result", "id": "task-0", "blob": <bytes>, "mimeType": "image/png"}
              {"type": "error", "id": "task-0", "message": "..."}

Messages of any other type are ignored. Every processed request gets exactly
one response carrying its id.

:class:`BulkProcessor` is the owner side: it decodes the source files,
posts one request per image, collects the responses by id and reports
progress. Request ids are tagged per call, so one worker can serve several
batches in turn.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from .compositor import render_frame
from .config import settings
from .exceptions import BatchFailedError, DecodeError, FrameError
from .export import ExportFile, framed_filename
from .formats import format_from_mime
from .frame_config import FrameConfig
from .source import PixelBuffer, SourceImage, decode_source

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict], Optional[dict]]
ProgressCallback = Callable[[int, int], None]


def process_message(task_id: Any, image_data: PixelBuffer, config: FrameConfig | dict) -> dict:
    """Build a ``process`` request message."""
    if isinstance(config, FrameConfig):
        config = config.to_dict()
    return {
        "type": "process",
        "id": task_id,
        "imageData": image_data.to_dict(),
        "config": config,
    }


def handle_message(message: Any) -> dict | None:
    """
    Process one request message.

    :param message: The incoming message
    :return: A ``result`` or ``error`` response for ``process`` requests,
        None for anything else
    """
    if not isinstance(message, dict) or message.get("type") != "process":
        return None
    task_id = message.get("id")
    try:
        buffer = PixelBuffer.from_dict(message.get("imageData") or {})
        config = FrameConfig.from_dict(message.get("config") or {})
        source = SourceImage.from_pixel_buffer(buffer)
        result = render_frame(source, config)
    except (FrameError, ValueError) as e:
        logger.debug("Task %s failed: %s", task_id, e)
        return {"type": "error", "id": task_id, "message": str(e) or "Unknown error"}
    return {
        "type": "result",
        "id": task_id,
        "blob": result.data,
        "mimeType": result.mime_type,
    }


class RenderWorker:
    """
    A single background thread executing render requests in submission order.

    Example:
        >>> with RenderWorker() as worker:
        ...     worker.post(process_message("task-0", buffer, config))
        ...     response = worker.get_response(timeout=10.0)
    """

    def __init__(self, handler: MessageHandler = handle_message, name: str = "RenderWorker"):
        """
        :param handler: Turns a request into a response (or None)
        :param name: Thread name
        """
        self._handler = handler
        self._name = name
        self._requests: queue.Queue = queue.Queue()
        self._responses: queue.Queue = queue.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread. Called by :meth:`post` if necessary."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._requests = queue.Queue()
        self._thread = threading.Thread(
            target=self._run, args=(self._requests,), daemon=True, name=self._name,
        )
        self._thread.start()

    def _run(self, requests: queue.Queue) -> None:
        while not self._stop_event.is_set():
            try:
                message = requests.get(timeout=0.1)
            except queue.Empty:
                continue

            if message is None:  # Poison pill
                break

            try:
                response = self._handler(message)
            except Exception as e:
                logger.exception("Unhandled error in render worker")
                task_id = message.get("id") if isinstance(message, dict) else None
                response = {"type": "error", "id": task_id, "message": str(e) or "Unknown error"}
            if response is not None:
                self._responses.put(response)

    def post(self, message: dict) -> None:
        """Queue a message for the worker (non-blocking)."""
        if not self.is_running:
            self.start()
        self._requests.put(message)

    def get_response(self, timeout: float | None = None) -> dict | None:
        """
        Next response of the worker.

        :param timeout: Max seconds to wait (None = forever)
        :return: The response, None if none arrived in time
        """
        try:
            return self._responses.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self, timeout: float = 1.0) -> None:
        """Stop the worker thread after the current request."""
        self._stop_event.set()
        self._requests.put(None)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def __enter__(self) -> RenderWorker:
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.stop()


@dataclass(frozen=True)
class RenderTask:
    """One image of a bulk export.

    :param id: Unique id within the batch
    :param data: The encoded source file
    :param name: Source file name
    :param config: Frame configuration
    """
    id: str
    data: bytes
    name: str
    config: FrameConfig


@dataclass(frozen=True)
class TaskOutput:
    """A successfully rendered task."""
    id: str
    name: str
    filename: str
    data: bytes
    mime_type: str

    def to_export_file(self) -> ExportFile:
        return ExportFile(self.filename, self.data, self.mime_type)


@dataclass(frozen=True)
class TaskError:
    """A failed task."""
    id: str
    name: str
    message: str
    exception: Optional[BaseException] = None


@dataclass
class BatchResult:
    """Outcome of a bulk run, in completion order."""
    results: list[TaskOutput] = field(default_factory=list)
    errors: list[TaskError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results) + len(self.errors)

    @property
    def all_failed(self) -> bool:
        return self.total > 0 and not self.results

    def export_files(self) -> list[ExportFile]:
        return [r.to_export_file() for r in self.results]

    def raise_if_all_failed(self) -> None:
        """
        :raises BatchFailedError: If no task succeeded
        """
        if self.all_failed:
            raise BatchFailedError(self.errors)


class BulkProcessor:
    """
    Renders many images on a background worker.

    Source files are decoded on the calling thread, the raw pixels are sent
    to the worker. A file that can't be decoded is reported as a task error
    and never sent.

    Example:
        >>> processor = BulkProcessor()
        >>> tasks = [RenderTask(f"task-{i}", data, name, config) for i, (name, data) in enumerate(files)]
        >>> batch = processor.process(tasks, on_progress=lambda done, total: print(done, total))
        >>> batch.raise_if_all_failed()
    """

    def __init__(self, worker: RenderWorker | None = None, poll_interval: float | None = None):
        """
        :param worker: Worker to use. If None a new worker is started per
            :meth:`process` call and stopped afterwards.
        :param poll_interval: Seconds between checks of the pending set,
            ``settings.WORKER_POLL_INTERVAL_S`` by default
        """
        self._worker = worker
        self.poll_interval = poll_interval or settings.WORKER_POLL_INTERVAL_S

    def process(
        self,
        tasks: Iterable[RenderTask],
        on_progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> BatchResult:
        """
        Render all tasks.

        :param tasks: The tasks, ids must be unique
        :param on_progress: Called with (completed, total) after every
            finished task, successful or not
        :param timeout: Seconds after which unfinished tasks are reported as
            timed out. None waits forever.
        :return: Results and errors. A partially failed batch does not raise.
        :raises ValueError: If task ids are not unique
        """
        tasks = list(tasks)
        ids = [t.id for t in tasks]
        if len(set(ids)) != len(ids):
            raise ValueError("Task ids must be unique within a batch")
        batch = BatchResult()
        total = len(tasks)
        if not tasks:
            return batch

        def report() -> None:
            if on_progress is not None:
                on_progress(batch.total, total)

        worker = self._worker or RenderWorker()
        own_worker = self._worker is None
        # ids are tagged per call, responses left over from an expired call don't match
        tag = str(uuid.uuid4())[:8]
        pending: dict[str, RenderTask] = {}
        try:
            for task in tasks:
                try:
                    buffer = decode_source(task.data, task.name).to_pixel_buffer()
                except DecodeError as e:
                    logger.warning("Skipping %s: %s", task.name, e)
                    batch.errors.append(TaskError(task.id, task.name, str(e), e))
                    report()
                    continue
                request_id = f"{tag}/{task.id}"
                pending[request_id] = task
                worker.post(process_message(request_id, buffer, task.config))
                logger.debug("Posted %s (%s)", task.id, task.name)

            deadline = time.monotonic() + timeout if timeout is not None else None
            while pending:
                response = worker.get_response(timeout=self.poll_interval)
                if response is None:
                    if deadline is not None and time.monotonic() >= deadline:
                        self._expire(pending, batch, timeout)
                        report()
                        break
                    continue
                task = pending.pop(response.get("id"), None)
                if task is None:
                    logger.debug("Ignoring response for unknown task %s", response.get("id"))
                    continue
                self._collect(task, response, batch)
                report()
        finally:
            if own_worker:
                worker.stop()
        if batch.errors:
            logger.warning("%d of %d images failed to process", len(batch.errors), total)
        return batch

    @staticmethod
    def _collect(task: RenderTask, response: dict, batch: BatchResult) -> None:
        if response.get("type") == "result" and response.get("blob"):
            mime = response.get("mimeType") or "image/png"
            batch.results.append(TaskOutput(
                id=task.id,
                name=task.name,
                filename=framed_filename(task.name, format_from_mime(mime)),
                data=response["blob"],
                mime_type=mime,
            ))
        else:
            message = response.get("message") or "Unknown error"
            logger.warning("Failed to process %s: %s", task.name, message)
            batch.errors.append(TaskError(task.id, task.name, message))

    @staticmethod
    def _expire(pending: dict[str, RenderTask], batch: BatchResult, timeout: float) -> None:
        for task in pending.values():
            message = f"Timed out after {timeout:g}s"
            batch.errors.append(TaskError(task.id, task.name, message, TimeoutError(message)))
        logger.warning("%d images timed out", len(pending))
        pending.clear()
