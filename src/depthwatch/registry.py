""":module: depthwatch.registry
:synopsis: In-memory index of the active inotify watches.

Classes
-------
.. autoclass:: WatchRecord
   :members:

.. autoclass:: WatchRegistry
   :members:

.. autoclass:: DuplicateTokenError

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from depthwatch.inotify_c import WatchDescriptor

logger = logging.getLogger(__name__)


class DuplicateTokenError(KeyError):
    """A watch record with the same watch descriptor is already registered."""


@dataclass(frozen=True)
class WatchRecord:
    """A directory being watched."""

    token: WatchDescriptor
    """The inotify watch descriptor"""
    depth: int
    """Number of directory levels below the root watch"""
    path: str
    """Absolute path of the watched directory"""

    def short_str(self) -> str:
        return f"<{type(self).__name__}: wd={self.token}, depth={self.depth}, path={self.path!r}>"


class WatchRegistry:
    """Owns every :class:`WatchRecord` of one watch engine, indexed both by
    watch descriptor and by path. Iteration order is unspecified.
    """

    def __init__(self) -> None:
        self._record_for_token: dict[WatchDescriptor, WatchRecord] = {}
        # newest last; a path can be re-watched before its old watch is retired
        self._tokens_for_path: dict[str, list[WatchDescriptor]] = {}

    def insert(self, record: WatchRecord) -> None:
        """Adds ``record``.

        :raises DuplicateTokenError:
            if a record with the same token is already registered.
        """
        if record.token in self._record_for_token:
            existing = self._record_for_token[record.token]
            msg = f"watch descriptor {record.token} is already registered for {existing.path!r}"
            raise DuplicateTokenError(msg)
        self._record_for_token[record.token] = record
        self._tokens_for_path.setdefault(record.path, []).append(record.token)

    def remove_by_token(self, token: WatchDescriptor) -> WatchRecord | None:
        """Removes and returns the record for ``token``, or ``None`` if there
        is none. Removing the same token twice is harmless."""
        record = self._record_for_token.pop(token, None)
        if record is None:
            return None
        tokens = self._tokens_for_path[record.path]
        tokens.remove(token)
        if not tokens:
            del self._tokens_for_path[record.path]
        return record

    def find_by_token(self, token: WatchDescriptor) -> WatchRecord | None:
        return self._record_for_token.get(token)

    def find_by_path(self, path: str) -> WatchRecord | None:
        """Returns the most recently inserted record for ``path``."""
        tokens = self._tokens_for_path.get(path)
        return self._record_for_token[tokens[-1]] if tokens else None

    def is_empty(self) -> bool:
        return not self._record_for_token

    def dump(self) -> None:
        """Logs the current watch list at debug level."""
        logger.debug("%d active watch(es):", len(self))
        for record in sorted(self, key=lambda r: (r.depth, r.path)):
            logger.debug("  %s", record.short_str())

    def __len__(self) -> int:
        return len(self._record_for_token)

    def __iter__(self) -> Iterator[WatchRecord]:
        # snapshot so callers can remove while iterating
        return iter(list(self._record_for_token.values()))

    def __contains__(self, token: object) -> bool:
        return token in self._record_for_token
