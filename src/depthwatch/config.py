""":module: depthwatch.config
:synopsis: Optional YAML configuration for the ``depthwatch`` command.

A configuration file is a YAML mapping; every key is optional::

    follow-symlinks: true     # descend into symlinked directories
    log-level: INFO           # DEBUG also logs the watch list on changes
    buffer-events: 1024       # events requested from the kernel per read
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import yaml

from depthwatch.inotify_c import DEFAULT_NUM_EVENTS

CONFIG_KEY_FOLLOW_SYMLINKS = "follow-symlinks"
CONFIG_KEY_LOG_LEVEL = "log-level"
CONFIG_KEY_BUFFER_EVENTS = "buffer-events"

CONFIG_KEYS = frozenset({CONFIG_KEY_FOLLOW_SYMLINKS, CONFIG_KEY_LOG_LEVEL, CONFIG_KEY_BUFFER_EVENTS})


class ConfigError(ValueError):
    """The configuration file is not usable."""


@dataclass
class WatchConfig:
    follow_symlinks: bool = True
    log_level: str = "INFO"
    buffer_events: int = DEFAULT_NUM_EVENTS

    @classmethod
    def from_mapping(cls, config: dict[str, Any]) -> WatchConfig:
        unknown = set(config) - CONFIG_KEYS
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")

        result = cls()
        if CONFIG_KEY_FOLLOW_SYMLINKS in config:
            follow_symlinks = config[CONFIG_KEY_FOLLOW_SYMLINKS]
            if not isinstance(follow_symlinks, bool):
                raise ConfigError(f"{CONFIG_KEY_FOLLOW_SYMLINKS!r} must be a boolean, got {follow_symlinks!r}")
            result.follow_symlinks = follow_symlinks

        if CONFIG_KEY_LOG_LEVEL in config:
            log_level = str(config[CONFIG_KEY_LOG_LEVEL]).upper()
            if not isinstance(logging.getLevelName(log_level), int):
                raise ConfigError(f"{CONFIG_KEY_LOG_LEVEL!r} is not a logging level: {log_level!r}")
            result.log_level = log_level

        if CONFIG_KEY_BUFFER_EVENTS in config:
            buffer_events = config[CONFIG_KEY_BUFFER_EVENTS]
            if isinstance(buffer_events, bool) or not isinstance(buffer_events, int) or buffer_events <= 0:
                raise ConfigError(f"{CONFIG_KEY_BUFFER_EVENTS!r} must be a positive integer, got {buffer_events!r}")
            result.buffer_events = buffer_events

        return result


def load_config(config_pathname: str) -> dict[str, Any]:
    """
    Loads the YAML configuration from the specified file.

    :param config_pathname:
        The path to the configuration file.
    :returns:
        A dictionary of configuration information.
    """
    with open(config_pathname, "rb") as f:
        config = yaml.safe_load(f.read())
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"{config_pathname}: expected a mapping at the top level")
    return config


def read_config(config_pathname: str | None) -> WatchConfig:
    if config_pathname is None:
        return WatchConfig()
    return WatchConfig.from_mapping(load_config(config_pathname))
