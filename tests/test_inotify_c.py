from __future__ import annotations

import pytest

from depthwatch.utils import platform

if not platform.is_linux():
    pytest.skip("GNU/Linux only.", allow_module_level=True)

import ctypes
import errno
import logging
import os
from unittest.mock import patch

from depthwatch import inotify_c
from depthwatch.inotify_c import (
    DEFAULT_EVENT_BUFFER_SIZE,
    DEPTHWATCH_EVENTS,
    EVENT_HEADER_SIZE,
    NAME_MAX,
    Inotify,
    InotifyConstants,
    InotifyEvent,
    event_buffer_size,
)

from .shell import mkdir, rm, touch
from .utils import P, struct_inotify

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


@pytest.mark.parametrize(
    ("error", "pattern"),
    [
        (errno.ENOSPC, "inotify watch limit reached"),
        (errno.EMFILE, "inotify instance limit reached"),
        (errno.ENOENT, "No such file or directory"),
        (errno.EACCES, "Permission denied"),
        (errno.EINVAL, "Invalid argument"),
        (-1, "error"),
    ],
)
def test_raise_error(error, pattern):
    with patch.object(ctypes, "get_errno", new=lambda: error), pytest.raises(OSError, match=pattern) as exc:
        Inotify._raise_error()  # noqa: SLF001
    assert exc.value.errno == error


def test_raise_error_ignores_invalid_argument():
    with patch.object(ctypes, "get_errno", new=lambda: errno.EINVAL):
        Inotify._raise_error(ignore_invalid_argument=True)  # noqa: SLF001


def test_parse_event_buffer():
    const = InotifyConstants()
    buf = (
        struct_inotify(wd=1, mask=const.IN_CREATE | const.IN_ISDIR, length=16, name=b"subdir1")
        + struct_inotify(wd=1, mask=const.IN_DELETE, length=32, name=b"a file")
        + struct_inotify(wd=2, mask=const.IN_DELETE_SELF)
        + struct_inotify(wd=2, mask=const.IN_IGNORED)
    )

    events = [InotifyEvent(*fields) for fields in Inotify._parse_event_buffer(buf)]  # noqa: SLF001

    assert events == [
        InotifyEvent(1, const.IN_CREATE | const.IN_ISDIR, 0, b"subdir1"),
        InotifyEvent(1, const.IN_DELETE, 0, b"a file"),
        InotifyEvent(2, const.IN_DELETE_SELF, 0, b""),
        InotifyEvent(2, const.IN_IGNORED, 0, b""),
    ]


def test_read_events_with_fake_fd():
    inotify_fd = type("FD", (object,), {})()
    inotify_fd.last = 0
    inotify_fd.wds = []
    inotify_fd.closed = False

    const = InotifyConstants()

    inotify_fd.buf = (
        struct_inotify(wd=1, mask=const.IN_CREATE | const.IN_ISDIR, length=16, name=b"subdir1")
        + struct_inotify(wd=2, mask=const.IN_DELETE_SELF)
        + struct_inotify(wd=2, mask=const.IN_IGNORED)
    )

    os_read_bkp = os.read

    def fakeread(fd, length):
        if fd is inotify_fd:
            result, fd.buf = fd.buf[:length], fd.buf[length:]
            return result
        return os_read_bkp(fd, length)

    os_close_bkp = os.close

    def fakeclose(fd):
        if fd is inotify_fd:
            fd.closed = True
        else:
            os_close_bkp(fd)

    def inotify_init():
        return inotify_fd

    def inotify_add_watch(fd, path, mask):
        fd.last += 1
        logger.debug("New wd = %d", fd.last)
        fd.wds.append(fd.last)
        return fd.last

    def inotify_rm_watch(fd, wd):
        logger.debug("Removing wd = %d", wd)
        fd.wds.remove(wd)
        return 0

    mock1 = patch.object(os, "read", new=fakeread)
    mock2 = patch.object(os, "close", new=fakeclose)
    mock3 = patch.object(inotify_c, "inotify_init", new=inotify_init)
    mock4 = patch.object(inotify_c, "inotify_add_watch", new=inotify_add_watch)
    mock5 = patch.object(inotify_c, "inotify_rm_watch", new=inotify_rm_watch)

    with mock1, mock2, mock3, mock4, mock5:
        with Inotify() as inotify:
            assert inotify.add_watch("/watched", DEPTHWATCH_EVENTS) == 1
            assert inotify.add_watch("/watched/subdir1", DEPTHWATCH_EVENTS) == 2
            events = inotify.read_events()
            inotify.remove_watch(1)

        assert inotify.closed
        assert inotify_fd.closed

    assert [(e.wd, e.name, e.is_create, e.is_directory) for e in events] == [
        (1, b"subdir1", True, True),
        (2, b"", False, True),
        (2, b"", False, False),
    ]
    assert events[1].is_delete_self
    assert events[2].is_ignored
    assert inotify_fd.buf == b""  # Didn't miss any event
    assert inotify_fd.wds == [2]


def test_event_buffer_size():
    assert event_buffer_size(1) == EVENT_HEADER_SIZE + NAME_MAX + 1
    assert DEFAULT_EVENT_BUFFER_SIZE == event_buffer_size(1024)


def test_event_properties():
    const = InotifyConstants()
    created_dir = InotifyEvent(1, const.IN_CREATE | const.IN_ISDIR, 0, b"d")
    deleted_file = InotifyEvent(1, const.IN_DELETE, 0, b"f")
    overflow = InotifyEvent(-1, const.IN_Q_OVERFLOW, 0, b"")

    assert created_dir.is_create
    assert created_dir.is_directory
    assert not created_dir.is_delete
    assert deleted_file.is_delete
    assert not deleted_file.is_directory
    assert overflow.is_q_overflow
    assert not overflow.is_ignored


def test_event_equality():
    wd_parent_dir = 42
    filename = b"file.ext"
    event1 = InotifyEvent(wd_parent_dir, InotifyConstants.IN_CREATE, 0, filename)
    event2 = InotifyEvent(wd_parent_dir, InotifyConstants.IN_CREATE, 0, filename)
    event3 = InotifyEvent(wd_parent_dir, InotifyConstants.IN_DELETE, 0, filename)
    assert event1 == event2
    assert event1 != event3
    assert event2 != event3
    assert hash(event1) == hash(event2)


def test_event_repr():
    event = InotifyEvent(3, InotifyConstants.IN_CREATE | InotifyConstants.IN_ISDIR, 0, b"\xe2\x98\x83")
    assert repr(event) == "<InotifyEvent: wd=3, mask=IN_CREATE|IN_ISDIR, cookie=0, name='\N{SNOWMAN}'>"


@pytest.mark.timeout(5)
def test_real_events(p: P) -> None:
    mkdir(p("root"))
    with Inotify() as inotify:
        wd = inotify.add_watch(p("root"), DEPTHWATCH_EVENTS)

        mkdir(p("root", "\N{SNOWMAN}"))
        touch(p("root", "file"))
        rm(p("root", "file"))
        events = inotify.read_events()

    assert [(e.wd, os.fsdecode(e.name), e.is_create, e.is_delete, e.is_directory) for e in events] == [
        (wd, "\N{SNOWMAN}", True, False, True),
        (wd, "file", True, False, False),
        (wd, "file", False, True, False),
    ]


@pytest.mark.timeout(5)
def test_real_delete_self(p: P) -> None:
    mkdir(p("root"))
    with Inotify() as inotify:
        wd = inotify.add_watch(p("root"), DEPTHWATCH_EVENTS)

        rm(p("root"))
        events = []
        while not any(e.is_ignored for e in events):
            events += inotify.read_events()

        # the kernel has dropped the watch already
        inotify.remove_watch(wd)

    assert events[0].wd == wd
    assert events[0].is_delete_self
    assert events[-1].is_ignored


def test_real_add_watch_errors(p: P) -> None:
    touch(p("file"))
    with Inotify() as inotify:
        with pytest.raises(FileNotFoundError):
            inotify.add_watch(p("missing"), DEPTHWATCH_EVENTS)

        # IN_ONLYDIR refuses anything but directories
        with pytest.raises(NotADirectoryError):
            inotify.add_watch(p("file"), DEPTHWATCH_EVENTS)


def test_same_inode_same_watch_descriptor(p: P) -> None:
    mkdir(p("root"))
    os.symlink(p("root"), p("link"))
    with Inotify() as inotify:
        assert inotify.add_watch(p("root"), DEPTHWATCH_EVENTS) == inotify.add_watch(p("link"), DEPTHWATCH_EVENTS)


def test_close_is_idempotent():
    inotify = Inotify()
    inotify.close()
    inotify.close()
    assert inotify.closed
