""":module: depthwatch.watchmedo
:synopsis: ``depthwatch`` shell script utility.

Usage::

    depthwatch [--config FILE] [--no-follow-symlinks] [--debug] <path> <depth>

Watches ``path`` and the directories below it, down to ``depth`` levels, and
prints a line for every entry created or deleted. Directories created while
running are picked up as long as they are within ``depth``. The command exits
once every watched directory is gone.
"""

from __future__ import annotations

import argparse
import contextlib
import errno
import logging
import os
import os.path
import signal
import sys

import yaml
from argh import ArghParser, arg

from depthwatch.config import ConfigError, read_config
from depthwatch.dispatcher import EventDispatcher
from depthwatch.events import ConsoleEventHandler
from depthwatch.inotify_c import Inotify, event_buffer_size
from depthwatch.installer import WatchTreeInstaller
from depthwatch.registry import WatchRegistry
from depthwatch.utils import WatchShutdownError
from depthwatch.version import VERSION_STRING

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s: %(levelname)s: %(message)s"


def parse_depth(value):
    """Parses the depth argument; only non-negative integers are accepted."""
    try:
        depth = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"depth must be a non-negative integer, got {value!r}") from None
    if depth < 0:
        raise argparse.ArgumentTypeError(f"depth must be a non-negative integer, got {value!r}")
    return depth


def configure_logging(level):
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)


@contextlib.contextmanager
def shutdown_on_signals():
    """Turns SIGTERM into :class:`WatchShutdownError` while active."""
    # Handle termination signals by raising a semantic exception which will
    # allow us to gracefully unwind and remove the watches
    def handler_termination_signal(_signum, _frame):
        # Neuter the signal so that we don't attempt a double shutdown
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
        raise WatchShutdownError

    previous = signal.signal(signal.SIGTERM, handler_termination_signal)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def observe_with(source, path, depth, event_handler, *, follow_symlinks=True):
    """
    Watches ``path`` down to ``depth`` on ``source`` and dispatches events
    to ``event_handler`` until nothing is watched anymore or a shutdown is
    requested.
    """
    registry = WatchRegistry()
    installer = WatchTreeInstaller(source, registry, follow_symlinks=follow_symlinks)
    dispatcher = EventDispatcher(source, registry, installer, depth, event_handler=event_handler)
    try:
        with shutdown_on_signals():
            if not installer.install(path, depth):
                raise OSError(f"failed to add inotify watch on {path}")

            print(f"Watching directory: {path} and its subdirectories up to depth: {depth}", flush=True)
            registry.dump()
            dispatcher.run()
    except (KeyboardInterrupt, WatchShutdownError):
        logger.info("Shutting down, removing %d watch(es)", len(registry))
        dispatcher.shutdown()


@arg("path", help="directory to watch")
@arg("depth", type=parse_depth, help="number of directory levels below path to watch")
@arg("--config", help="YAML configuration file")
@arg("--no-follow-symlinks", help="do not descend into symbolic links to directories")
@arg("--debug", help="log the list of watches whenever it changes")
def watch(path, depth, *, config=None, no_follow_symlinks=False, debug=False):
    """
    Watches a directory tree for created and deleted entries.
    """
    settings = read_config(config)
    if no_follow_symlinks:
        settings.follow_symlinks = False
    if debug:
        settings.log_level = "DEBUG"
    configure_logging(settings.log_level)

    path = os.path.abspath(path)
    print(f"Attempting to open directory: {path}", flush=True)
    if not os.path.exists(path):
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
    if not os.path.isdir(path):
        raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), path)

    with Inotify(event_buffer_size=event_buffer_size(settings.buffer_events)) as source:
        observe_with(
            source,
            path,
            depth,
            ConsoleEventHandler(),
            follow_symlinks=settings.follow_symlinks,
        )


epilog = """Licensed under the terms of the Apache license, version 2.0. Please see
LICENSE in the source code for more information."""

parser = ArghParser(prog="depthwatch", epilog=epilog)
parser.set_default_command(watch)
parser.add_argument("--version", action="version", version="%(prog)s " + VERSION_STRING)


def main(argv=None):
    """Entry-point function."""
    try:
        parser.dispatch(argv=argv)
    except (OSError, ConfigError, yaml.YAMLError) as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
