from __future__ import annotations

from . import activators, containers
from .activators import Activator, Activators, DecorationChain, chains, rollup
from .containers import LazyContainer, is_computed, keys, lazy, snapshot
from .errors import (
    ActivatorLoadError,
    InvalidActivatorError,
    LazykitError,
    ReadOnlyContainerError,
)


def _resolve_version() -> str:
    try:
        from importlib.metadata import version

        return version("lazykit")
    except Exception:  # pragma: no cover - during development
        return "0.0.0"


def __getattr__(name: str):
    if name == "__version__":
        value = _resolve_version()
        globals()["__version__"] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + ["__version__"])


__all__ = [
    "Activator",
    "Activators",
    "ActivatorLoadError",
    "DecorationChain",
    "InvalidActivatorError",
    "LazyContainer",
    "LazykitError",
    "ReadOnlyContainerError",
    "activators",
    "chains",
    "containers",
    "is_computed",
    "keys",
    "lazy",
    "rollup",
    "snapshot",
    "__version__",
]
