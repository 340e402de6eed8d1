""":module: depthwatch.events
:synopsis: Reports produced by the watch engine and handlers for them.

Event Classes
-------------
.. autoclass:: FileSystemEvent
   :members:
   :show-inheritance:

.. autoclass:: FileCreatedEvent
   :members:
   :show-inheritance:

.. autoclass:: DirCreatedEvent
   :members:
   :show-inheritance:

.. autoclass:: FileDeletedEvent
   :members:
   :show-inheritance:

.. autoclass:: DirDeletedEvent
   :members:
   :show-inheritance:

.. autoclass:: WatchRemovedEvent
   :members:
   :show-inheritance:

Event Handler Classes
---------------------
.. autoclass:: FileSystemEventHandler
   :members:
   :show-inheritance:

.. autoclass:: ConsoleEventHandler
   :members:
   :show-inheritance:

.. autoclass:: LoggingEventHandler
   :members:
   :show-inheritance:

"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from typing import TextIO

EVENT_TYPE_CREATED = "created"
EVENT_TYPE_DELETED = "deleted"
EVENT_TYPE_WATCH_REMOVED = "watch_removed"


@dataclass(unsafe_hash=True)
class FileSystemEvent:
    """Immutable type that represents a file system event that is triggered
    when a change occurs on the monitored file system.

    All FileSystemEvent objects are required to be immutable and hence
    can be used as keys in dictionaries or be added to sets.
    """

    src_path: str
    depth: int = field(default=0, compare=False)
    """Depth of the directory the event was reported for, relative to the root watch."""

    event_type: ClassVar[str] = ""
    """The type of the event as a string."""

    is_directory: ClassVar[bool] = False
    """True if event was emitted for a directory; False otherwise."""


class FileCreatedEvent(FileSystemEvent):
    """File system event representing file creation on the file system."""

    event_type = EVENT_TYPE_CREATED


class FileDeletedEvent(FileSystemEvent):
    """File system event representing file deletion on the file system."""

    event_type = EVENT_TYPE_DELETED


class DirCreatedEvent(FileSystemEvent):
    """File system event representing directory creation on the file system."""

    event_type = EVENT_TYPE_CREATED
    is_directory = True


class DirDeletedEvent(FileSystemEvent):
    """File system event representing directory deletion on the file system."""

    event_type = EVENT_TYPE_DELETED
    is_directory = True


class WatchRemovedEvent(FileSystemEvent):
    """A watched directory was itself deleted and its watch was retired."""

    event_type = EVENT_TYPE_WATCH_REMOVED
    is_directory = True


class FileSystemEventHandler:
    """Base file system event handler that you can override methods from."""

    def dispatch(self, event: FileSystemEvent) -> None:
        """Dispatches events to the appropriate methods.

        :param event:
            The event object representing the file system event.
        :type event:
            :class:`FileSystemEvent`
        """
        self.on_any_event(event)
        getattr(self, f"on_{event.event_type}")(event)

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Catch-all event handler.

        :param event:
            The event object representing the file system event.
        :type event:
            :class:`FileSystemEvent`
        """

    def on_created(self, event: DirCreatedEvent | FileCreatedEvent) -> None:
        """Called when a file or directory is created.

        :param event:
            Event representing file/directory creation.
        :type event:
            :class:`DirCreatedEvent` or :class:`FileCreatedEvent`
        """

    def on_deleted(self, event: DirDeletedEvent | FileDeletedEvent) -> None:
        """Called when a file or directory is deleted.

        :param event:
            Event representing file/directory deletion.
        :type event:
            :class:`DirDeletedEvent` or :class:`FileDeletedEvent`
        """

    def on_watch_removed(self, event: WatchRemovedEvent) -> None:
        """Called when a watched directory was deleted and is no longer watched.

        :param event:
            Event representing the retired watch.
        :type event:
            :class:`WatchRemovedEvent`
        """


class ConsoleEventHandler(FileSystemEventHandler):
    """Writes one line per event to a text stream (standard output by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # resolved late so a replaced sys.stdout is honoured
        return self._stream if self._stream is not None else sys.stdout

    def _write(self, line: str) -> None:
        stream = self.stream
        buffer = getattr(stream, "buffer", None)
        if buffer is None:
            stream.write(line + "\n")
            stream.flush()
            return

        # Names that are not valid in the filesystem encoding carry surrogate
        # escapes; write them back out as the original bytes.
        stream.flush()
        buffer.write(os.fsencode(line) + b"\n")
        buffer.flush()

    def on_created(self, event: DirCreatedEvent | FileCreatedEvent) -> None:
        what = "Directory" if event.is_directory else "File"
        self._write(f"{what} created: {event.src_path}")

    def on_deleted(self, event: DirDeletedEvent | FileDeletedEvent) -> None:
        what = "Directory" if event.is_directory else "File"
        self._write(f"{what} deleted: {event.src_path}")

    def on_watch_removed(self, event: WatchRemovedEvent) -> None:
        self._write(f"Remove watch on directory: {event.src_path}")


class LoggingEventHandler(FileSystemEventHandler):
    """Logs all the events captured."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        super().__init__()
        self.logger = logger or logging.root

    def on_created(self, event: DirCreatedEvent | FileCreatedEvent) -> None:
        super().on_created(event)

        what = "directory" if event.is_directory else "file"
        self.logger.info("Created %s: %s", what, event.src_path)

    def on_deleted(self, event: DirDeletedEvent | FileDeletedEvent) -> None:
        super().on_deleted(event)

        what = "directory" if event.is_directory else "file"
        self.logger.info("Deleted %s: %s", what, event.src_path)

    def on_watch_removed(self, event: WatchRemovedEvent) -> None:
        super().on_watch_removed(event)

        self.logger.info("Removed watch on directory: %s", event.src_path)
