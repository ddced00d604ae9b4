from __future__ import annotations


class LazykitError(Exception):
    """Base class for errors raised by lazykit itself."""


class ReadOnlyContainerError(LazykitError, AttributeError):
    """Raised on any attempt to assign or delete a container attribute."""

    def __init__(self, name: str, action: str = "set") -> None:
        super().__init__(f"Cannot {action} property {name!r} of read-only container")
        self.name = name


class InvalidActivatorError(LazykitError, TypeError):
    """Raised when an activator map is malformed."""


class ActivatorLoadError(LazykitError):
    """Raised when an activator map cannot be located or imported."""
