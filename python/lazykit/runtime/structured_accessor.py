from __future__ import annotations

import json as _json
from typing import Any, Iterable, Optional

from ..containers import snapshot


def parse_value(text: str) -> Any:
    """Parse ``text`` as JSON, falling back to the text itself.

    ``"3"`` becomes ``3`` and ``'{"a": 1}'`` a dict, while ``hello`` stays
    the string ``"hello"``.
    """
    try:
        return _json.loads(text)
    except _json.JSONDecodeError:
        return text


def _fallback(value: Any) -> Any:
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return repr(value)


def to_json(value: Any, *, indent: Optional[int] = None) -> str:
    """Serialize resolved values; anything JSON cannot encode is shown by repr."""
    return _json.dumps(value, indent=indent, default=_fallback)


def query(container, expression: str, names: Optional[Iterable[str]] = None) -> Any:
    """Apply a JMESPath expression to the resolved properties of ``container``.

    The expression sees a dict of ``names`` (default: every key), so each of
    those properties is evaluated first.
    """

    import jmespath as _jmespath  # type: ignore[import-untyped]

    return _jmespath.search(expression, snapshot(container, names))
