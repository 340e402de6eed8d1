""":module: depthwatch.dispatcher
:synopsis: The event loop reconciling inotify events with the watch registry.

The dispatcher reads one batch of events at a time from the notification
source and handles every event of the batch before reading again:

- entries created inside a watched directory are reported; new directories
  get watches of their own (down to the depth limit),
- entries deleted inside a watched directory are reported,
- a watched directory that is itself deleted loses its registry record.

The loop ends once no watch is left.

Events can refer to watches the registry no longer knows about, e.g. when a
batch holds events queued before the watch was retired. Those are logged and
skipped.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from depthwatch.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
    WatchRemovedEvent,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from depthwatch.inotify_c import InotifyEvent, WatchSource
    from depthwatch.installer import WatchTreeInstaller
    from depthwatch.registry import WatchRecord, WatchRegistry

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Consumes events from ``source`` and keeps ``registry`` in sync with
    the watched tree.

    :param source:
        The notification source events are read from.
    :param registry:
        The registry of active watches, usually populated by ``installer``.
    :param installer:
        Used to watch directories created while the loop runs.
    :param depth_limit:
        Deepest directory level that gets watched.
    :param event_handler:
        Receives a report for every change. Defaults to a handler that
        ignores everything.
    """

    def __init__(
        self,
        source: WatchSource,
        registry: WatchRegistry,
        installer: WatchTreeInstaller,
        depth_limit: int,
        *,
        event_handler: FileSystemEventHandler | None = None,
    ) -> None:
        self._source = source
        self._registry = registry
        self._installer = installer
        self.depth_limit = depth_limit
        self.event_handler = event_handler if event_handler is not None else FileSystemEventHandler()

    @property
    def is_running(self) -> bool:
        return not self._registry.is_empty()

    def run(self) -> None:
        """Reads and dispatches batches of events until no watch is left.
        Returns without reading when the registry is already empty."""
        while self.is_running:
            self.dispatch_batch(self._source.read_events())
        logger.debug("no watches left, stopping")

    def dispatch_batch(self, events: Iterable[InotifyEvent]) -> bool:
        """Dispatches every event of one read. Returns whether the dispatcher
        is still running afterwards."""
        for event in events:
            self.dispatch(event)
        return self.is_running

    def dispatch(self, event: InotifyEvent) -> None:
        if event.is_ignored:
            # acknowledgement for a watch that is already gone
            return

        if event.is_q_overflow:
            logger.warning("inotify event queue overflowed, some events were lost")
            return

        record = self._registry.find_by_token(event.wd)
        if record is None:
            logger.warning("unknown watch descriptor %d: %r", event.wd, event)
            return

        if event.name:
            self._dispatch_child_event(record, event)
        elif event.is_delete_self:
            self._retire_watch(record)

    def shutdown(self) -> None:
        """Removes every remaining watch."""
        for record in self._registry:
            self._registry.remove_by_token(record.token)
            try:
                self._source.remove_watch(record.token)
            except OSError as e:
                logger.warning("failed to remove inotify watch on %s: %s", record.path, e)

    def _dispatch_child_event(self, record: WatchRecord, event: InotifyEvent) -> None:
        child_path = os.path.join(record.path, os.fsdecode(event.name))
        child_depth = record.depth + 1

        if event.is_create:
            if event.is_directory:
                added = self._installer.install(child_path, self.depth_limit, child_depth)
                self._report(DirCreatedEvent(child_path, child_depth))
                if added:
                    self._registry.dump()
            else:
                self._report(FileCreatedEvent(child_path, child_depth))
        elif event.is_delete:
            # the parent's watch stays in place
            cls = DirDeletedEvent if event.is_directory else FileDeletedEvent
            self._report(cls(child_path, child_depth))

    def _retire_watch(self, record: WatchRecord) -> None:
        self._registry.remove_by_token(record.token)
        # the kernel has usually dropped the watch already (EINVAL is ignored)
        self._source.remove_watch(record.token)
        self._report(WatchRemovedEvent(record.path, record.depth))

    def _report(self, event: FileSystemEvent) -> None:
        self.event_handler.dispatch(event)
