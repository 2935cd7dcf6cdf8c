"""
File change notifications for the tailer.

watchdog delivers events on its observer thread. They are handed to the
event loop through an :class:`EventChannel`, a queue with exactly one slot:
when a wake-up is already pending, further events are dropped. Nothing is
lost by that, because every wake-up makes the tailer read from its cursor
to the end of the file, which covers all the writes the dropped events
announced.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileModifiedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from auditor.core.constants import EVENT_CHANNEL_CAPACITY
from auditor.core.exceptions import WatchIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEvent:
    """The watched file's contents changed."""

    path: Path


_CLOSED = object()


class EventChannel:
    """
    Bounded, coalescing hand-off from a notifier to the event loop.

    ``offer`` must run on the loop; ``offer_threadsafe`` may be called from
    any thread once the channel is bound to a loop.
    """

    def __init__(self, capacity: int = EVENT_CHANNEL_CAPACITY) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False
        self.coalesced = 0

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: FileEvent) -> bool:
        """Enqueue *event*; return False if it was merged into a pending one."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.coalesced += 1
            return False
        return True

    def offer_threadsafe(self, event: FileEvent) -> None:
        if self._loop is None:
            raise RuntimeError("EventChannel is not bound to an event loop")
        try:
            self._loop.call_soon_threadsafe(self.offer, event)
        except RuntimeError:
            # Loop already closed during shutdown.
            logger.debug("Dropping file event after loop shutdown: %s", event.path)

    def close(self) -> None:
        """End the stream; a pending wake-up is discarded."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[FileEvent]:
        return self

    async def __anext__(self) -> FileEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the sentinel for any other consumer.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class FileEventSource(ABC):
    """A stream of modification events for one file."""

    @abstractmethod
    async def start(self) -> None:
        """Begin watching."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop watching and end the event stream."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[FileEvent]:
        """Iterate events until the source is stopped."""


class _ModifiedHandler(FileSystemEventHandler):
    """watchdog callback: forwards data changes of the target file only."""

    def __init__(self, target: Path, channel: EventChannel) -> None:
        self._target = target
        self._channel = channel

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory or not isinstance(event, FileModifiedEvent):
            return
        if Path(os.fsdecode(event.src_path)) != self._target:
            return
        self._channel.offer_threadsafe(FileEvent(self._target))


class WatchdogEventSource(FileEventSource):
    """
    Watch a single file with a watchdog observer.

    The observer is scheduled on the parent directory without recursion
    (inotify and friends watch directories) and everything except
    modifications of the target path is filtered out.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).resolve()
        self.channel = EventChannel()
        self._observer: Observer | None = None

    async def start(self) -> None:
        self.channel.bind(asyncio.get_running_loop())
        observer = Observer()
        try:
            observer.schedule(
                _ModifiedHandler(self.path, self.channel),
                str(self.path.parent),
                recursive=False,
            )
            observer.start()
        except OSError as exc:
            raise WatchIOError(f"Cannot watch {self.path}: {exc}") from exc
        self._observer = observer
        logger.info("Watching %s", self.path)

    async def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            await asyncio.to_thread(observer.join, 2.0)
        self.channel.close()

    def __aiter__(self) -> AsyncIterator[FileEvent]:
        return self.channel
