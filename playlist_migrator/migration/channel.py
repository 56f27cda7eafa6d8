"""
Bounded progress channel between a migration worker and its consumer.

The worker thread writes events with put(); the consumer iterates the
channel until the worker calls finish(). The consumer may call close() at
any time (a disconnected client, Ctrl+C in the CLI): every later put()
raises ChannelClosedError, which the orchestrator logs and ignores while
it keeps processing and persisting tracks.

Usage:
    channel = service.start_migration(playlist_id)
    for event in channel:
        print(event.to_dict())
    if channel.error:
        raise channel.error
"""

import queue
import threading
from typing import Iterator

from playlist_migrator.core.exceptions import ChannelClosedError
from playlist_migrator.migration.events import MigrationSummary, ProgressEvent


DEFAULT_CAPACITY = 256

# How often a blocked put() re-checks whether the consumer went away
POLL_INTERVAL_SECONDS = 0.1

_END = object()


class ProgressChannel:
    """
    Single-producer/single-consumer bounded event queue.

    Attributes:
        summary: MigrationSummary once the worker finished successfully.
        error: Exception that ended the worker, if any.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._done = threading.Event()
        self.summary: MigrationSummary | None = None
        self.error: BaseException | None = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def done(self) -> bool:
        """True once the producer has finished."""
        return self._done.is_set()

    def put(self, event: ProgressEvent) -> None:
        """
        Write an event, blocking while the channel is full.

        Raises:
            ChannelClosedError: If the consumer closed the channel.
        """
        self._offer(event)

    __call__ = put

    def _offer(self, item: object) -> None:
        while True:
            if self._closed.is_set():
                raise ChannelClosedError("Progress channel closed by consumer")
            try:
                self._queue.put(item, timeout=POLL_INTERVAL_SECONDS)
                return
            except queue.Full:
                continue

    def finish(
        self,
        summary: MigrationSummary | None = None,
        error: BaseException | None = None
    ) -> None:
        """Record the outcome and end the event stream. Called by the producer."""
        self.summary = summary
        self.error = error
        self._done.set()
        try:
            self._offer(_END)
        except ChannelClosedError:
            pass

    def close(self) -> None:
        """Stop consuming. Called by the consumer; pending events are dropped."""
        self._closed.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the producer finished. Returns False on timeout."""
        return self._done.wait(timeout)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while not self._closed.is_set():
            try:
                item = self._queue.get(timeout=POLL_INTERVAL_SECONDS)
            except queue.Empty:
                continue
            if item is _END:
                return
            yield item
