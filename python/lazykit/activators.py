"""Merging activator maps into decoration chains."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Tuple, TypeVar

from .errors import InvalidActivatorError
from .runtime.lazy_proxy import LayerView

__all__ = [
    "Activator",
    "Activators",
    "DecorationChain",
    "chains",
    "describe_activator",
    "rollup",
]

_log = logging.getLogger(__name__)

T = TypeVar("T")

Activator = Callable[[Any], Any]
# ``Activators[Thing]`` annotates a map whose activators read a ``Thing``.
Activators = Mapping[str, Callable[[T], Any]]


class DecorationChain:
    """Activator for a key defined by more than one layer.

    ``layers`` runs base first. Calling the chain evaluates the last layer
    against a view in which the chain's own key resolves to the layer below,
    recursively, down to the base layer which sees the view it was given.
    Every other key reads through to that view unchanged.
    """

    __slots__ = ("key", "layers")

    def __init__(self, key: str, layers: Tuple[Activator, ...]) -> None:
        if len(layers) < 2:
            raise ValueError("a decoration chain needs at least two layers")
        self.key = key
        self.layers = tuple(layers)

    def __call__(self, resolved):
        return self._evaluate(len(self.layers) - 1, resolved)

    def _evaluate(self, index: int, resolved):
        layer = self.layers[index]
        if index == 0:
            return layer(resolved)
        view = LayerView(resolved, self.key, lambda: self._evaluate(index - 1, resolved))
        return layer(view)

    def __len__(self) -> int:
        return len(self.layers)

    def __repr__(self):
        names = ", ".join(describe_activator(layer) for layer in self.layers)
        return f"DecorationChain({self.key!r}, [{names}])"


def describe_activator(activator) -> str:
    return getattr(activator, "__qualname__", None) or repr(activator)


def _layers_of(key: str, activator) -> Tuple[Activator, ...]:
    if isinstance(activator, DecorationChain) and activator.key == key:
        return activator.layers
    return (activator,)


def rollup(*activator_maps: Mapping[str, Any]) -> Dict[str, Activator]:
    """Merge activator maps, later maps decorating earlier ones.

    Keys defined once keep their activator as is. A key defined by several
    maps becomes a :class:`DecorationChain` in the order the maps were given.
    Chains produced by an earlier ``rollup`` are spliced rather than nested,
    so any grouping of the same maps yields the same chains.
    """
    collected: Dict[str, list] = {}
    for position, activators in enumerate(activator_maps):
        if not isinstance(activators, Mapping):
            raise InvalidActivatorError(
                f"rollup argument {position} must be a mapping, "
                f"got {type(activators).__name__}"
            )
        for key, activator in activators.items():
            if not isinstance(key, str):
                raise InvalidActivatorError(
                    f"activator keys must be strings, got {type(key).__name__}"
                )
            if not callable(activator):
                raise InvalidActivatorError(
                    f"activator for {key!r} is not callable: {type(activator).__name__}"
                )
            collected.setdefault(key, []).extend(_layers_of(key, activator))

    merged: Dict[str, Activator] = {}
    for key, layers in collected.items():
        merged[key] = layers[0] if len(layers) == 1 else DecorationChain(key, tuple(layers))
    if _log.isEnabledFor(logging.DEBUG):
        decorated = sorted(key for key, layers in collected.items() if len(layers) > 1)
        _log.debug(
            "rolled up %d maps into %d keys, decorated: %s",
            len(activator_maps),
            len(merged),
            ", ".join(decorated) or "none",
        )
    return merged


def chains(activators: Mapping[str, Any]) -> Dict[str, Tuple[Activator, ...]]:
    """Return the layers behind each key of ``activators``, base first."""
    return {key: _layers_of(key, activator) for key, activator in activators.items()}
