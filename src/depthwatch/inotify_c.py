""":module: depthwatch.inotify_c
:synopsis: ``ctypes`` bindings for the Linux ``inotify(7)`` API.
:platforms: Linux 2.6.13+.

The notification source used by the watch engine. One :class:`Inotify`
instance owns one inotify file descriptor; watches are added and removed by
path/descriptor and events are read back in batches with a blocking
:meth:`Inotify.read_events` call.
"""

from __future__ import annotations

import ctypes
import errno
import logging
import os
import struct
from ctypes import c_char_p, c_int, c_uint32
from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING, Callable, ClassVar, NewType, Protocol, cast

from depthwatch.utils import UnsupportedLibcError

if TYPE_CHECKING:
    from collections.abc import Generator
    from types import TracebackType

logger = logging.getLogger(__name__)

libc = ctypes.CDLL(None)

if not hasattr(libc, "inotify_init") or not hasattr(libc, "inotify_add_watch") or not hasattr(libc, "inotify_rm_watch"):
    error = f"Unsupported libc version found: {libc._name}"  # noqa:SLF001
    raise UnsupportedLibcError(error)


WatchDescriptor = NewType("WatchDescriptor", int)
Mask = NewType("Mask", int)

inotify_add_watch = cast(
    Callable[[int, bytes, int], WatchDescriptor],
    ctypes.CFUNCTYPE(c_int, c_int, c_char_p, c_uint32, use_errno=True)(("inotify_add_watch", libc)),
)

inotify_rm_watch = cast(
    Callable[[int, WatchDescriptor], int],
    ctypes.CFUNCTYPE(c_int, c_int, c_uint32, use_errno=True)(("inotify_rm_watch", libc)),
)

inotify_init = cast(Callable[[], int], ctypes.CFUNCTYPE(c_int, use_errno=True)(("inotify_init", libc)))


class InotifyConstants:
    # User-space events
    IN_MODIFY: ClassVar[Mask] = Mask(0x00000002)  # File was modified.
    IN_ATTRIB: ClassVar[Mask] = Mask(0x00000004)  # Meta-data changed.
    IN_MOVED_FROM: ClassVar[Mask] = Mask(0x00000040)  # File was moved from X.
    IN_MOVED_TO: ClassVar[Mask] = Mask(0x00000080)  # File was moved to Y.
    IN_CREATE: ClassVar[Mask] = Mask(0x00000100)  # Subfile was created.
    IN_DELETE: ClassVar[Mask] = Mask(0x00000200)  # Subfile was deleted.
    IN_DELETE_SELF: ClassVar[Mask] = Mask(0x00000400)  # Self was deleted.
    IN_MOVE_SELF: ClassVar[Mask] = Mask(0x00000800)  # Self was moved.

    # Events sent by the kernel to a watch.
    IN_UNMOUNT: ClassVar[Mask] = Mask(0x00002000)  # Backing file system was unmounted.
    IN_Q_OVERFLOW: ClassVar[Mask] = Mask(0x00004000)  # Event queued overflowed.
    IN_IGNORED: ClassVar[Mask] = Mask(0x00008000)  # File was ignored.

    # Special flags.
    IN_ONLYDIR: ClassVar[Mask] = Mask(0x01000000)  # Only watch the path if it's a directory.
    IN_DONT_FOLLOW: ClassVar[Mask] = Mask(0x02000000)  # Do not follow a symbolic link.
    IN_ISDIR: ClassVar[Mask] = Mask(0x40000000)  # Event occurred against directory.


INOTIFY_ALL_CONSTANTS: dict[str, Mask] = {
    name: getattr(InotifyConstants, name) for name in dir(InotifyConstants) if name.startswith("IN_")
}


# The watch engine only tracks entries appearing and disappearing.
DEPTHWATCH_EVENTS: Mask = reduce(
    lambda x, y: Mask(x | y),
    [
        InotifyConstants.IN_CREATE,
        InotifyConstants.IN_DELETE,
        InotifyConstants.IN_DELETE_SELF,
        InotifyConstants.IN_ONLYDIR,
    ],
)


def _get_mask_string(mask: int) -> str:
    return "|".join(name for name, c_val in INOTIFY_ALL_CONSTANTS.items() if mask & c_val)


# struct inotify_event without the trailing name.
EVENT_HEADER_FORMAT = "iIII"
EVENT_HEADER_SIZE = struct.calcsize(EVENT_HEADER_FORMAT)
NAME_MAX = 255
DEFAULT_NUM_EVENTS = 1024


def event_buffer_size(num_events: int = DEFAULT_NUM_EVENTS) -> int:
    """Size of a read buffer large enough for ``num_events`` events carrying
    names of up to ``NAME_MAX`` bytes."""
    return num_events * (EVENT_HEADER_SIZE + NAME_MAX + 1)


DEFAULT_EVENT_BUFFER_SIZE = event_buffer_size()


@dataclass(unsafe_hash=True, frozen=True)
class InotifyEvent:
    """Inotify event struct wrapper."""

    wd: WatchDescriptor
    """Watch descriptor"""
    mask: Mask
    """Event mask"""
    cookie: int
    """Event cookie"""
    name: bytes
    """Base name of the entry inside the watched directory. Empty for events
    about the watched directory itself."""

    @property
    def is_create(self) -> bool:
        return self.mask & InotifyConstants.IN_CREATE > 0

    @property
    def is_delete(self) -> bool:
        return self.mask & InotifyConstants.IN_DELETE > 0

    @property
    def is_delete_self(self) -> bool:
        return self.mask & InotifyConstants.IN_DELETE_SELF > 0

    @property
    def is_ignored(self) -> bool:
        return self.mask & InotifyConstants.IN_IGNORED > 0

    @property
    def is_q_overflow(self) -> bool:
        return self.mask & InotifyConstants.IN_Q_OVERFLOW > 0

    @property
    def is_directory(self) -> bool:
        # The kernel does not set IN_ISDIR for IN_DELETE_SELF.
        # Only directories are watched, so assume it's a dir.
        return self.is_delete_self or self.mask & InotifyConstants.IN_ISDIR > 0

    def __repr__(self) -> str:
        contents = ", ".join(
            [
                f"wd={self.wd}",
                f"mask={_get_mask_string(self.mask)}",
                f"cookie={self.cookie}",
                f"name={os.fsdecode(self.name)!r}",
            ]
        )
        return f"<{type(self).__name__}: {contents}>"


class WatchSource(Protocol):
    """What the watch engine needs from a notification source."""

    def add_watch(self, path: str, mask: Mask) -> WatchDescriptor: ...

    def remove_watch(self, wd: WatchDescriptor) -> None: ...

    def read_events(self) -> list[InotifyEvent]: ...


class Inotify:
    """Linux inotify(7) API wrapper class.

    Opens an inotify instance on construction and closes it on :meth:`close`
    (or when used as a context manager). All calls are synchronous;
    :meth:`read_events` blocks until the kernel has at least one event.

    :param event_buffer_size:
        Number of bytes requested from the kernel per read.
    """

    def __init__(self, *, event_buffer_size: int = DEFAULT_EVENT_BUFFER_SIZE) -> None:
        # The file descriptor associated with the inotify instance.
        self._inotify_fd: int = self._create_inotify_fd()
        self._event_buffer_size = event_buffer_size
        self._closed = False

    @classmethod
    def _create_inotify_fd(cls) -> int:
        inotify_fd = inotify_init()
        if inotify_fd == -1:
            Inotify._raise_error()
        return inotify_fd

    @property
    def closed(self) -> bool:
        return self._closed

    def add_watch(self, path: str, mask: Mask = DEPTHWATCH_EVENTS) -> WatchDescriptor:
        """Adds a watch for the given path to monitor events specified by the
        mask. Returns the watch descriptor; inotify hands back the descriptor
        of the existing watch if the inode is already watched.

        :param path:
            Path to monitor.
        :param mask:
            Event bit mask.
        :raises OSError:
            if the kernel refuses the watch.
        """
        wd = inotify_add_watch(self._inotify_fd, os.fsencode(path), mask)
        if wd == -1:
            Inotify._raise_error()
        return wd

    def remove_watch(self, wd: WatchDescriptor) -> None:
        """Removes the watch with the given descriptor. The kernel drops watches
        on deleted directories on its own, so an unknown descriptor is not an
        error.
        """
        if inotify_rm_watch(self._inotify_fd, wd) == -1:
            Inotify._raise_error(ignore_invalid_argument=True)

    def read_events(self) -> list[InotifyEvent]:
        """Blocks until inotify has events and returns one batch of them."""
        event_buffer = os.read(self._inotify_fd, self._event_buffer_size)
        return [
            InotifyEvent(wd, mask, cookie, name)
            for wd, mask, cookie, name in Inotify._parse_event_buffer(event_buffer)
        ]

    def close(self) -> None:
        """Closes the inotify instance. The kernel releases any watches left."""
        if not self._closed:
            self._closed = True
            os.close(self._inotify_fd)

    def __enter__(self) -> Inotify:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @staticmethod
    def _raise_error(*, ignore_invalid_argument: bool = False) -> None:
        """Raises errors for inotify failures."""
        err = ctypes.get_errno()

        if err == errno.ENOSPC:
            raise OSError(errno.ENOSPC, "inotify watch limit reached")

        if err == errno.EMFILE:
            raise OSError(errno.EMFILE, "inotify instance limit reached")

        if ignore_invalid_argument and err == errno.EINVAL:
            return  # ignore

        raise OSError(err, os.strerror(err))

    @staticmethod
    def _parse_event_buffer(event_buffer: bytes) -> Generator[tuple[WatchDescriptor, Mask, int, bytes]]:
        """Parses an event buffer of ``inotify_event`` structs returned by
        inotify::

            struct inotify_event {
                __s32 wd;            /* watch descriptor */
                __u32 mask;          /* watch mask */
                __u32 cookie;        /* cookie to synchronize two events */
                __u32 len;           /* length (including nulls) of name */
                char  name[0];       /* stub for possible name */
            };
        """
        i = 0
        while i + EVENT_HEADER_SIZE <= len(event_buffer):
            wd, mask, cookie, length = struct.unpack_from(EVENT_HEADER_FORMAT, event_buffer, i)
            name = event_buffer[i + EVENT_HEADER_SIZE : i + EVENT_HEADER_SIZE + length].rstrip(b"\0")
            i += EVENT_HEADER_SIZE + length
            yield wd, mask, cookie, name
