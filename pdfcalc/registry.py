"""
Type registries for the swappable strategy families.

Every strategy family (peak width models, peak profiles, baselines,
envelopes and scattering factor tables) owns one :class:`Registry`.
Concrete classes register themselves with a class decorator at import time
under their ``type_name``; callers then create instances by tag without
knowing the concrete class.  Registries are filled once, at import, and are
read-only afterwards.
"""

from __future__ import annotations

import copy
from typing import Any, Generic, TypeVar


class UnknownTypeError(ValueError):
    """Raised when a strategy is requested by a tag nobody registered."""
    pass


T = TypeVar("T", bound="Registrable")


class Registrable:
    """
    Mixin for strategy classes created by tag.

    Subclasses define the class attribute ``type_name``.
    """

    type_name: str = ""

    def create(self):
        """Return a new instance of the same type with default parameters."""
        return type(self)()

    def clone(self):
        """Return an independent copy of this instance."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Registry(Generic[T]):
    """
    Mapping from string tag to strategy class.

    Parameters
    ----------
    family : str
        Human readable family name used in error messages.
    """

    def __init__(self, family: str) -> None:
        self.family = family
        self._types: dict[str, type[T]] = {}

    def register(self, cls: type[T]) -> type[T]:
        """Class decorator to register a strategy by its ``type_name``."""
        tag = getattr(cls, "type_name", None)
        if not tag:
            raise ValueError(f"{cls.__name__} must define type_name")
        registered = self._types.get(tag)
        if registered is not None and registered is not cls:
            raise ValueError(
                f"{self.family} type {tag!r} is already registered "
                f"by {registered.__name__}"
            )
        self._types[tag] = cls
        return cls

    def create(self, tag: str, **kwargs: Any) -> T:
        """
        Create a new instance of the strategy registered under *tag*.

        Raises
        ------
        UnknownTypeError
            If no class is registered under *tag*.
        """
        cls = self._types.get(tag)
        if cls is None:
            raise UnknownTypeError(
                f"Unknown {self.family} type {tag!r}. "
                f"Available types: {', '.join(self.types())}"
            )
        return cls(**kwargs)

    def resolve(self, value: T | str) -> T:
        """Return *value* if it is already a strategy, else create it by tag."""
        if isinstance(value, str):
            return self.create(value)
        if not isinstance(value, Registrable) or value.type_name not in self._types:
            raise TypeError(
                f"Expected a registered {self.family} or its tag, got {value!r}"
            )
        return value

    def types(self) -> tuple[str, ...]:
        """Return the sorted tuple of registered tags."""
        return tuple(sorted(self._types))

    def __contains__(self, tag: object) -> bool:
        return tag in self._types
