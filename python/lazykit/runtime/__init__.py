"""Runtime helpers, imported on first use.

The helpers live in a lazy container of their own: each attribute of
:data:`helpers` imports its module the first time it is read.
"""

from __future__ import annotations

import importlib
from typing import Any, Callable

from ..containers import lazy

__all__ = ["helpers", "HELPER_REGISTRY"]

# Maps helper name -> (module, attribute) relative to this package.
HELPER_REGISTRY: dict[str, tuple[str, str]] = {
    "LayerView": (".lazy_proxy", "LayerView"),
    "EnvConfig": (".env", "EnvConfig"),
    "parse_log_level": (".env", "parse_log_level"),
    "parse_value": (".structured_accessor", "parse_value"),
    "to_json": (".structured_accessor", "to_json"),
    "query": (".structured_accessor", "query"),
}


def _load_helper(module_name: str, attr_name: str) -> Any:
    module = importlib.import_module(module_name, package=__name__)
    return getattr(module, attr_name)


def _make_loader(module_name: str, attr_name: str) -> Callable[[Any], Any]:
    def loader(_resolved: Any) -> Any:
        return _load_helper(module_name, attr_name)

    loader.__qualname__ = f"load_{attr_name}"
    return loader


helpers = lazy(
    {
        name: _make_loader(module_name, attr_name)
        for name, (module_name, attr_name) in HELPER_REGISTRY.items()
    }
)


def __getattr__(name: str):
    if name in HELPER_REGISTRY:
        return getattr(helpers, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
