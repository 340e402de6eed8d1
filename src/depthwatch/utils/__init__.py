""":module: depthwatch.utils
:synopsis: Utility classes and functions.

Classes
-------
.. autoclass:: UnsupportedLibcError

.. autoclass:: WatchShutdownError

"""

from __future__ import annotations


class UnsupportedLibcError(Exception):
    """The C library in use does not provide the inotify(7) calls."""


class WatchShutdownError(Exception):
    """Semantic exception used to signal an external shutdown event."""
