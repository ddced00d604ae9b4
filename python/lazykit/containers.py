"""Lazily evaluated, read-only containers built from activator maps.

A container exposes one attribute per activator. Reading an attribute for
the first time calls its activator with the container itself, so activators
can read sibling attributes (which evaluate on demand in turn). The result
is cached in the attribute's cell and the activator is never called again.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, TypeVar

from .errors import InvalidActivatorError, ReadOnlyContainerError

if TYPE_CHECKING:
    from .activators import Activators

__all__ = ["LazyContainer", "lazy", "keys", "is_computed", "snapshot"]

_log = logging.getLogger(__name__)

T = TypeVar("T")

# Cell states.
NOT_COMPUTED = "not computed"
COMPUTING = "computing"
COMPUTED = "computed"


class _Cell:
    """Cache slot for a single property."""

    __slots__ = ("key", "activator", "state", "value", "lock")

    def __init__(self, key: str, activator, threadsafe: bool) -> None:
        self.key = key
        self.activator = activator
        self.state = NOT_COMPUTED
        self.value = None
        self.lock = threading.RLock() if threadsafe else None

    def resolve(self, container):
        if self.state is COMPUTED:
            return self.value
        if self.lock is None:
            return self._activate(container)
        with self.lock:
            if self.state is COMPUTED:
                return self.value
            return self._activate(container)

    def _activate(self, container):
        _log.debug("activating %r", self.key)
        self.state = COMPUTING
        try:
            value = self.activator(container)
        except BaseException:
            # Leave the cell unresolved so the next read retries.
            self.state = NOT_COMPUTED
            _log.debug("activator for %r failed", self.key, exc_info=True)
            raise
        self.value = value
        self.state = COMPUTED
        self.activator = None
        return value


class LazyContainer:
    """Read-only object whose attributes are computed on first access."""

    __slots__ = ("_lazy_cells",)

    def __init__(self, activators: Mapping[str, Any], *, threadsafe: bool = False) -> None:
        cells = {
            key: _Cell(key, activator, threadsafe)
            for key, activator in _validate(activators).items()
        }
        object.__setattr__(self, "_lazy_cells", cells)

    def __getattr__(self, name):
        # Only reached for names not found on the class or in slots.
        try:
            cell = object.__getattribute__(self, "_lazy_cells")[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!r} object has no attribute {name!r}"
            ) from None
        return cell.resolve(self)

    def __setattr__(self, name, value):
        raise ReadOnlyContainerError(name)

    def __delattr__(self, name):
        raise ReadOnlyContainerError(name, action="delete")

    def __dir__(self):
        return list(object.__getattribute__(self, "_lazy_cells"))

    def __repr__(self):
        cells = object.__getattribute__(self, "_lazy_cells")
        parts = []
        for key, cell in cells.items():
            if cell.state is COMPUTED:
                parts.append(f"{key}={cell.value!r}")
            else:
                parts.append(f"{key}=<{cell.state}>")
        return f"{type(self).__name__}({', '.join(parts)})"


_RESERVED_KEYS = frozenset(dir(LazyContainer))


def _validate(activators: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(activators, Mapping):
        raise InvalidActivatorError(
            f"activators must be a mapping, got {type(activators).__name__}"
        )
    for key, activator in activators.items():
        if not isinstance(key, str):
            raise InvalidActivatorError(
                f"activator keys must be strings, got {type(key).__name__}"
            )
        if key in _RESERVED_KEYS or key.startswith("_lazy_"):
            raise InvalidActivatorError(f"activator key {key!r} is reserved")
        if not callable(activator):
            raise InvalidActivatorError(
                f"activator for {key!r} is not callable: {type(activator).__name__}"
            )
    return activators


def lazy(activators: Activators[T], *, threadsafe: bool = False) -> T:
    """Build a lazy container from ``activators``.

    No activator runs here. Each one runs at most once, on the first read of
    its attribute, and only succeeds once: a raising activator leaves the
    attribute unresolved so that the next read tries again.

    With ``threadsafe=True`` every attribute gets its own re-entrant lock so
    that concurrent first reads still call the activator only once.
    """
    return LazyContainer(activators, threadsafe=threadsafe)  # type: ignore[return-value]


def _cells(container) -> dict[str, _Cell]:
    from .runtime.lazy_proxy import LayerView

    # Layer views stand in for the container they wrap.
    while isinstance(container, LayerView):
        container = object.__getattribute__(container, "_lazy_target")
    if not isinstance(container, LazyContainer):
        raise TypeError(f"expected a lazy container, got {type(container).__name__}")
    return object.__getattribute__(container, "_lazy_cells")


def keys(container) -> tuple[str, ...]:
    """Return the declared keys of ``container`` without evaluating any."""
    return tuple(_cells(container))


def is_computed(container, key: str) -> bool:
    try:
        cell = _cells(container)[key]
    except KeyError:
        raise KeyError(key) from None
    return cell.state is COMPUTED


def snapshot(container, names: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Read ``names`` (default: every key) and return them as a plain dict."""
    if names is None:
        names = keys(container)
    return {name: getattr(container, name) for name in names}
