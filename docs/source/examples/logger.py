import logging
import sys

from depthwatch.events import LoggingEventHandler
from depthwatch.inotify_c import Inotify
from depthwatch.watchmedo import observe_with

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(message)s")

path = sys.argv[1]
depth = int(sys.argv[2]) if len(sys.argv) > 2 else 1

with Inotify() as inotify:
    observe_with(inotify, path, depth, LoggingEventHandler())
