from __future__ import annotations

import os
from functools import partial

import pytest

from depthwatch.registry import WatchRegistry

from .utils import FakeInotify, P, RecordingEventHandler


@pytest.fixture(name="p")
def p_fixture(tmpdir) -> P:
    """
    Convenience function to join the temporary directory path
    with the provided arguments.
    """
    return partial(os.path.join, os.fspath(tmpdir))


@pytest.fixture(autouse=True)
def _no_warnings(recwarn):
    """Fail on warning."""

    yield

    warnings = []
    for warning in recwarn:  # pragma: no cover
        if "argh" in warning.filename:
            continue
        warnings.append(f"{warning.filename}:{warning.lineno} {warning.message}")
    assert not warnings, warnings


@pytest.fixture(name="fake_inotify")
def fake_inotify_fixture() -> FakeInotify:
    return FakeInotify()


@pytest.fixture(name="registry")
def registry_fixture() -> WatchRegistry:
    return WatchRegistry()


@pytest.fixture(name="handler")
def handler_fixture() -> RecordingEventHandler:
    return RecordingEventHandler()
