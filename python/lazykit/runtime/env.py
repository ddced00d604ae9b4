from __future__ import annotations

import logging
import os

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"", "0", "false", "no", "off"})

_DEFAULTS = {
    "LAZYKIT_LOG_LEVEL": "WARNING",
    "LAZYKIT_THREADSAFE": "",
    "LAZYKIT_JSON": "",
}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def parse_log_level(raw: str) -> int:
    """Resolve a level name (``debug``) or number (``10``) to a logging level."""
    value = raw.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {raw}")
    return level


class EnvConfig:
    """Settings read from ``LAZYKIT_*`` environment variables."""

    __slots__ = ("_env",)

    def __init__(self, env=None) -> None:
        self._env = os.environ if env is None else env

    def _lookup(self, key: str) -> str:
        try:
            return self._env[key]
        except KeyError:
            return _DEFAULTS[key]

    def __getitem__(self, key):
        return self._lookup(key)

    @property
    def log_level(self) -> int:
        return parse_log_level(self._lookup("LAZYKIT_LOG_LEVEL"))

    @property
    def threadsafe(self) -> bool:
        return _parse_bool("LAZYKIT_THREADSAFE", self._lookup("LAZYKIT_THREADSAFE"))

    @property
    def json_output(self) -> bool:
        return _parse_bool("LAZYKIT_JSON", self._lookup("LAZYKIT_JSON"))
