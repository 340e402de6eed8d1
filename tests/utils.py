from __future__ import annotations

import dataclasses
import errno
import os
import struct
from typing import Protocol

from depthwatch.events import FileSystemEvent, FileSystemEventHandler
from depthwatch.inotify_c import InotifyConstants, InotifyEvent, Mask, WatchDescriptor


class P(Protocol):
    def __call__(self, *args: str) -> str: ...


def struct_inotify(wd, mask, cookie=0, length=0, name=b""):
    assert len(name) <= length
    struct_format = (
        "="  # (native endianness, standard sizes)
        "i"  # int      wd
        "I"  # uint32_t mask
        "I"  # uint32_t cookie
        "I"  # uint32_t len
        f"{length}s"  # char[] name
    )
    return struct.pack(struct_format, wd, mask, cookie, length, name)


def inotify_event(wd: int, mask: int, name: bytes | str = b"") -> InotifyEvent:
    return InotifyEvent(WatchDescriptor(wd), Mask(mask), 0, os.fsencode(name))


class FakeInotify:
    """Stands in for :class:`depthwatch.inotify_c.Inotify`.

    Watches are only handed out for paths that are directories on disk, one
    descriptor per inode like the kernel does. Batches returned by
    ``read_events`` are queued up front with ``queue``.
    """

    def __init__(self) -> None:
        self.last = 0
        self.wd_for_inode: dict[tuple[int, int], WatchDescriptor] = {}
        self.added: list[str] = []
        self.removed: list[WatchDescriptor] = []
        self.errors: dict[str, int] = {}
        self.batches: list[list[InotifyEvent]] = []
        self.reads = 0

    def fail(self, path: str, err: int) -> None:
        self.errors[path] = err

    def queue(self, *events: InotifyEvent) -> None:
        self.batches.append(list(events))

    def add_watch(self, path: str, mask: Mask) -> WatchDescriptor:
        if path in self.errors:
            err = self.errors[path]
            raise OSError(err, os.strerror(err), path)
        if mask & InotifyConstants.IN_DONT_FOLLOW and os.path.islink(path):
            raise OSError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), path)
        if not os.path.isdir(path):
            err = errno.ENOTDIR if os.path.exists(path) else errno.ENOENT
            raise OSError(err, os.strerror(err), path)

        st = os.stat(path)
        inode = (st.st_dev, st.st_ino)
        if inode not in self.wd_for_inode:
            self.last += 1
            self.wd_for_inode[inode] = WatchDescriptor(self.last)
        self.added.append(path)
        return self.wd_for_inode[inode]

    def remove_watch(self, wd: WatchDescriptor) -> None:
        self.removed.append(wd)

    def read_events(self) -> list[InotifyEvent]:
        assert self.batches, "read_events() would block forever"
        self.reads += 1
        return self.batches.pop(0)


@dataclasses.dataclass()
class RecordingEventHandler(FileSystemEventHandler):
    events: list[FileSystemEvent] = dataclasses.field(default_factory=list)

    def on_any_event(self, event: FileSystemEvent) -> None:
        self.events.append(event)


def make_tree(root: str, depth: int, *, fanout: int = 2) -> dict[int, list[str]]:
    """Creates a uniform tree of directories ``depth`` levels below ``root``
    and returns the directories per level (``root`` being level 0)."""
    os.makedirs(root, exist_ok=True)
    levels = {0: [root]}
    for level in range(1, depth + 1):
        levels[level] = []
        for parent in levels[level - 1]:
            for i in range(fanout):
                path = os.path.join(parent, f"d{level}_{i}")
                os.mkdir(path)
                levels[level].append(path)
    return levels
