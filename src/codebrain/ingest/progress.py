"""Progress channel between an ingestion worker and one listener."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterator

logger = logging.getLogger("codebrain.ingest")

_FINISHED = object()


class LogChannel:
    """A queue of progress lines produced by one ingestion job.

    The worker calls ``emit()`` for every progress line and ``finish()`` when
    the job ends. The listener iterates the channel; iteration stops after
    ``finish()``. A listener that goes away calls ``close()``: later
    ``emit()`` calls stop queueing lines but the job keeps running.

    Every line is mirrored to the ``codebrain.ingest`` logger at DEBUG; the
    listener is the one that shows it to the user. Error lines on a channel
    without a listener are also logged at WARNING.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    @classmethod
    def detached(cls) -> LogChannel:
        """A channel with no listener: lines reach the logger only."""
        channel = cls()
        channel.close()
        return channel

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def emit(self, message: str) -> None:
        logger.debug(message)
        if not self._closed.is_set():
            self._queue.put(message)

    def error(self, message: str) -> None:
        # No listener will show it.
        if self._closed.is_set():
            logger.warning(message)
        self.emit(message)

    def close(self) -> None:
        self._closed.set()

    def finish(self) -> None:
        self._queue.put(_FINISHED)

    def __iter__(self) -> Iterator[str]:
        while True:
            item = self._queue.get()
            if item is _FINISHED:
                return
            yield item

    def drain(self) -> list[str]:
        """Return every line queued so far without blocking."""
        lines: list[str] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return lines
            if item is not _FINISHED:
                lines.append(item)
