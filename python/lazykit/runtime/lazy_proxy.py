"""Views handed to the layers of a decoration chain."""

from __future__ import annotations

from ..errors import ReadOnlyContainerError

_UNSET = object()


def _slot(view, name):
    return object.__getattribute__(view, name)


def _prior_value(view):
    value = _slot(view, "_lazy_value")
    if value is _UNSET:
        value = _slot(view, "_lazy_prior")()
        object.__setattr__(view, "_lazy_value", value)
        object.__setattr__(view, "_lazy_prior", None)
    return value


class LayerView:
    """Forwards attribute reads to a target, except for one redirected key.

    Reading ``key`` returns the result of ``prior()``, evaluated on first
    read and memoized for the lifetime of the view. Every other attribute is
    read from the target, so sibling properties always resolve through the
    final container.
    """

    __slots__ = ("_lazy_target", "_lazy_key", "_lazy_prior", "_lazy_value")

    def __init__(self, target, key: str, prior) -> None:
        object.__setattr__(self, "_lazy_target", target)
        object.__setattr__(self, "_lazy_key", key)
        object.__setattr__(self, "_lazy_prior", prior)
        object.__setattr__(self, "_lazy_value", _UNSET)

    def __getattr__(self, name):
        if name == _slot(self, "_lazy_key"):
            return _prior_value(self)
        return getattr(_slot(self, "_lazy_target"), name)

    def __setattr__(self, name, value):
        raise ReadOnlyContainerError(name)

    def __delattr__(self, name):
        raise ReadOnlyContainerError(name, action="delete")

    def __dir__(self):
        return dir(_slot(self, "_lazy_target"))

    def __repr__(self):
        key = _slot(self, "_lazy_key")
        return f"LayerView({key!r} -> {_slot(self, '_lazy_target')!r})"
