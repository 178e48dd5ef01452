"""
ProgressReporter — ordered progress stream plus a terminal outcome.

One producer (the pipeline) and at most one consumer. Two delivery
modes, chosen when the reporter is built:

- **streaming** — lines go into a bounded ``queue.Queue``; the
  consumer iterates ``events()`` on its own thread. A full queue
  blocks the producer until the consumer catches up.
- **synchronous** — no consumer; each line is handed straight to a
  writer (stdout by default) on the producer's thread.

The pipeline only ever calls ``emit()`` and ``close()``, so step logic
never knows which mode is active.

Lifecycle
─────────
``close(result)`` is called exactly once, when the pipeline returns.
After that ``emit()`` and ``close()`` raise ``RuntimeError``. In
streaming mode the consumer's ``events()`` loop ends when it reaches
the close marker; it should then read ``result`` (or ``wait()``).
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import Callable, Iterator

from ecsetup.core.models.result import PipelineResult
from ecsetup.core.observability.logging_config import PROGRESS_LOGGER

logger = logging.getLogger(__name__)
progress_logger = logging.getLogger(PROGRESS_LOGGER)

_CLOSED = object()


def _stdout_writer(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


class ProgressReporter:
    """Single-producer/single-consumer progress channel.

    Use the ``streaming()`` or ``synchronous()`` constructors rather
    than calling ``__init__`` directly.
    """

    def __init__(
        self,
        *,
        maxsize: int = 10,
        writer: Callable[[str], None] | None = None,
        streaming: bool = True,
    ) -> None:
        self._streaming = streaming
        self._queue: queue.Queue[object] | None = (
            queue.Queue(maxsize=maxsize) if streaming else None
        )
        self._writer = writer or _stdout_writer
        self._lock = threading.Lock()
        self._closed = False
        self._drained = False
        self._done = threading.Event()
        self._result: PipelineResult | None = None
        self._emitted = 0

    # ── Constructors ────────────────────────────────────────────

    @classmethod
    def streaming(cls, maxsize: int = 10) -> ProgressReporter:
        """Reporter feeding a bounded queue for a concurrent consumer."""
        return cls(maxsize=maxsize, streaming=True)

    @classmethod
    def synchronous(cls, writer: Callable[[str], None] | None = None) -> ProgressReporter:
        """Reporter writing each line immediately (no consumer attached)."""
        return cls(writer=writer, streaming=False)

    # ── Properties ──────────────────────────────────────────────

    @property
    def is_streaming(self) -> bool:
        return self._streaming

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def emitted(self) -> int:
        """Number of events produced so far."""
        with self._lock:
            return self._emitted

    @property
    def result(self) -> PipelineResult | None:
        """Terminal outcome, or None while the pipeline is still running."""
        with self._lock:
            return self._result

    # ── Producer side ───────────────────────────────────────────

    def emit(self, line: str) -> None:
        """Deliver one progress line, in order."""
        with self._lock:
            if self._closed:
                raise RuntimeError("progress stream already closed")
            self._emitted += 1

        progress_logger.debug("%s", line)
        if self._queue is not None:
            self._queue.put(line)
        else:
            self._writer(line)

    def close(self, result: PipelineResult) -> None:
        """Close the stream and publish the terminal outcome."""
        with self._lock:
            if self._closed:
                raise RuntimeError("progress stream already closed")
            self._closed = True
            self._result = result

        if self._queue is not None:
            self._queue.put(_CLOSED)
        self._done.set()
        logger.debug("Progress stream closed (ok=%s, events=%d)", result.ok, self._emitted)

    # ── Consumer side ───────────────────────────────────────────

    def events(self) -> Iterator[str]:
        """Yield progress lines in emission order until the stream closes.

        Only meaningful in streaming mode; a synchronous reporter has
        already written its lines and yields nothing.
        """
        if self._queue is None or self._drained:
            return
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._drained = True
                return
            yield item  # type: ignore[misc]

    def wait(self, timeout: float | None = None) -> PipelineResult | None:
        """Block until the stream is closed and return the outcome.

        Returns None if ``timeout`` elapses first.
        """
        if not self._done.wait(timeout):
            return None
        return self.result
