""":module: depthwatch.installer
:synopsis: Recursive, depth-bounded installation of directory watches.

inotify(7) monitoring of directories is not recursive: to monitor
subdirectories under a directory, additional watches must be created. The
:class:`WatchTreeInstaller` walks a directory tree and adds one watch per
directory until the depth limit is reached, registering each watch in a
:class:`~depthwatch.registry.WatchRegistry`.

The tree can change while it is being walked. A directory that disappears
between being listed by its parent and being watched is skipped quietly; any
other failure to watch a directory is logged and only that subtree is given
up on.
"""

from __future__ import annotations

import errno
import logging
import os
from typing import TYPE_CHECKING

from depthwatch.inotify_c import DEPTHWATCH_EVENTS, InotifyConstants, Mask
from depthwatch.registry import WatchRecord

if TYPE_CHECKING:
    from depthwatch.inotify_c import WatchSource
    from depthwatch.registry import WatchRegistry

logger = logging.getLogger(__name__)

# Linux PATH_MAX, including the terminating null byte.
PATH_MAX = 4096

# A listed entry that is gone by the time it is watched.
_VANISHED_ERRNOS = frozenset({errno.ENOENT, errno.ENOTDIR})


class PathTooLongError(OSError):
    """The path cannot be handed to the kernel without truncation."""


def build_event_mask(event_mask: Mask, *, follow_symlinks: bool) -> Mask:
    if follow_symlinks:
        return Mask(event_mask & ~InotifyConstants.IN_DONT_FOLLOW)
    return Mask(event_mask | InotifyConstants.IN_DONT_FOLLOW)


def check_path_length(path: str) -> None:
    if len(os.fsencode(path)) >= PATH_MAX:
        raise PathTooLongError(errno.ENAMETOOLONG, os.strerror(errno.ENAMETOOLONG), path)


class WatchTreeInstaller:
    """Adds watches on a directory and its subdirectories.

    :param source:
        The notification source watches are added to.
    :param registry:
        The registry receiving one :class:`WatchRecord` per added watch.
    :param follow_symlinks:
        Whether symbolic links to directories are descended into. Cycles are
        cut because inotify returns the already registered descriptor for an
        inode that is watched twice.
    """

    def __init__(
        self,
        source: WatchSource,
        registry: WatchRegistry,
        *,
        follow_symlinks: bool = True,
        event_mask: Mask = DEPTHWATCH_EVENTS,
    ) -> None:
        self._source = source
        self._registry = registry
        self.follow_symlinks = follow_symlinks
        self.event_mask = build_event_mask(event_mask, follow_symlinks=follow_symlinks)

    def install(self, base_path: str, depth_limit: int, current_depth: int = 0) -> int:
        """Watches ``base_path`` at ``current_depth`` and every directory below
        it down to ``depth_limit``. Returns the number of watches added.

        Nothing happens when ``current_depth`` is already past the limit.
        """
        return self._install(os.path.abspath(base_path), depth_limit, current_depth, listed=False)

    def _install(self, base_path: str, depth_limit: int, current_depth: int, *, listed: bool) -> int:
        if current_depth > depth_limit:
            return 0

        try:
            check_path_length(base_path)
            wd = self._source.add_watch(base_path, self.event_mask)
        except OSError as e:
            if listed and e.errno in _VANISHED_ERRNOS:
                logger.debug("%s vanished before it could be watched", base_path)
            else:
                logger.warning("failed to add inotify watch on %s: %s", base_path, e)
            return 0

        existing = self._registry.find_by_token(wd)
        if existing is not None:
            logger.debug("%s is already watched as %s, not descending", base_path, existing.path)
            return 0

        self._registry.insert(WatchRecord(wd, current_depth, base_path))
        added = 1

        if current_depth == depth_limit:
            return added

        try:
            with os.scandir(base_path) as entries:
                subdirs = [entry.path for entry in entries if self._is_dir(entry)]
        except OSError as e:
            if e.errno in _VANISHED_ERRNOS:
                logger.debug("%s vanished while being listed", base_path)
            else:
                logger.warning("failed to list %s: %s", base_path, e)
            return added

        for path in subdirs:
            added += self._install(path, depth_limit, current_depth + 1, listed=True)
        return added

    def _is_dir(self, entry: os.DirEntry[str]) -> bool:
        try:
            return entry.is_dir(follow_symlinks=self.follow_symlinks)
        except OSError:
            return False
