""":module: depthwatch
:synopsis: Depth-bounded recursive directory watching on Linux inotify(7).

The watch engine is made of three parts:

- :class:`~depthwatch.registry.WatchRegistry` tracks the active watches,
- :class:`~depthwatch.installer.WatchTreeInstaller` adds watches on a tree,
- :class:`~depthwatch.dispatcher.EventDispatcher` runs the event loop.

The ``depthwatch`` command (:mod:`depthwatch.watchmedo`) wires them to
:class:`~depthwatch.inotify_c.Inotify`.
"""
