"""Immutable, queryable sequence of Model instances."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from configforge.models.base import Model


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple)):
        return expected in actual
    return str(expected) in str(actual)


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(actual: Any, expected: Any) -> bool:
        if actual is None:
            return False
        try:
            return op(actual, expected)
        except TypeError:
            return False

    return compare


# Lookup suffix -> predicate(actual, expected)
LOOKUPS: dict[str, Callable[[Any, Any], bool]] = {
    "exact": lambda actual, expected: actual == expected,
    "except": lambda actual, expected: actual != expected,
    "contains": _contains,
    "startswith": lambda actual, expected: str(actual).startswith(str(expected)),
    "endswith": lambda actual, expected: str(actual).endswith(str(expected)),
    "in": lambda actual, expected: actual in expected,
    "lt": _compare(lambda actual, expected: actual < expected),
    "lte": _compare(lambda actual, expected: actual <= expected),
    "gt": _compare(lambda actual, expected: actual > expected),
    "gte": _compare(lambda actual, expected: actual >= expected),
    "regex": lambda actual, expected: re.search(expected, str(actual)) is not None,
}


def parse_lookup(key: str) -> tuple[str, str]:
    """Split `field__lookup` into (field, lookup), defaulting to exact."""
    field_name, sep, lookup = key.rpartition("__")
    if sep and lookup in LOOKUPS:
        return field_name, lookup
    return key, "exact"


class ModelSet:
    """An ordered, immutable collection of Models of one type.

    Example:
        gateways = Gateway.read_all(store)
        gateways.filter(name__startswith="gw").first()
    """

    def __init__(self, model_objects: list[Model] | tuple[Model, ...] = ()):
        self._objects: tuple[Model, ...] = tuple(model_objects)

    def __iter__(self) -> Iterator[Model]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __getitem__(self, index: int) -> Model:
        return self._objects[index]

    def __bool__(self) -> bool:
        return bool(self._objects)

    def __repr__(self) -> str:
        return f"<ModelSet {list(self._objects)!r}>"

    def exists(self) -> bool:
        return bool(self._objects)

    def first(self) -> Model | None:
        return self._objects[0] if self._objects else None

    def count(self) -> int:
        return len(self._objects)

    def filter(self, **lookups: Any) -> ModelSet:
        """Return the Models matching every lookup.

        Keys are field names ("id" allowed) with an optional `__<lookup>`
        suffix; see LOOKUPS for the supported suffixes.

        Raises:
            KeyError: If a lookup names a field the Model does not declare
        """
        criteria = []
        for key, expected in lookups.items():
            field_name, lookup = parse_lookup(key)
            criteria.append((field_name, LOOKUPS[lookup], expected))

        matches = [
            obj
            for obj in self._objects
            if all(predicate(obj.lookup(field_name), expected) for field_name, predicate, expected in criteria)
        ]
        return ModelSet(matches)

    def to_representation(self) -> list[dict[str, Any]]:
        return [obj.to_representation() for obj in self._objects]
