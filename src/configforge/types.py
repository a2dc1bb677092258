"""Enumerations shared by Models and Fields."""

from enum import Enum


class Operation(str, Enum):
    """The mutation a Model is performing."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SortOrder(str, Enum):
    """How a sorted many-model orders its collection."""

    ASCENDING = "ascending"
    DESCENDING = "descending"
    NATURAL = "natural"
