"""General-purpose validators: numeric range, length and regex."""

import re
from typing import Any

from configforge.validators.base import Validator


class NumericRangeValidator(Validator):
    """Requires minimum <= value <= maximum."""

    def __init__(self, minimum: float | None = None, maximum: float | None = None):
        if minimum is not None and maximum is not None and minimum > maximum:
            raise ValueError(f"minimum {minimum} exceeds maximum {maximum}")
        self.minimum = minimum
        self.maximum = maximum

    def validate(self, value: Any, field_name: str) -> None:
        if self.minimum is not None and value < self.minimum:
            self.fail(
                f"Field '{field_name}' must be at least {self.minimum}, received {value}.",
                "NUMERIC_RANGE_VALIDATOR_MINIMUM_CONSTRAINT",
                field_name,
                value,
            )
        if self.maximum is not None and value > self.maximum:
            self.fail(
                f"Field '{field_name}' must be at most {self.maximum}, received {value}.",
                "NUMERIC_RANGE_VALIDATOR_MAXIMUM_CONSTRAINT",
                field_name,
                value,
            )


class LengthValidator(Validator):
    """Bounds the length of a string value."""

    def __init__(self, minimum: int = 0, maximum: int | None = None):
        self.minimum = minimum
        self.maximum = maximum

    def validate(self, value: Any, field_name: str) -> None:
        length = len(value)
        if length < self.minimum:
            self.fail(
                f"Field '{field_name}' must be at least {self.minimum} characters.",
                "LENGTH_VALIDATOR_MINIMUM_CONSTRAINT",
                field_name,
                value,
            )
        if self.maximum is not None and length > self.maximum:
            self.fail(
                f"Field '{field_name}' must be at most {self.maximum} characters.",
                "LENGTH_VALIDATOR_MAXIMUM_CONSTRAINT",
                field_name,
                value,
            )


class RegexValidator(Validator):
    """Requires the value to match a pattern (or not to, when inverted)."""

    def __init__(self, pattern: str | re.Pattern, error_message: str = "", invert: bool = False):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern
        self.error_message = error_message
        self.invert = invert

    def validate(self, value: Any, field_name: str) -> None:
        matched = bool(self.pattern.search(str(value)))
        if matched == self.invert:
            self.fail(
                self.error_message or f"Field '{field_name}' format is invalid.",
                "REGEX_VALIDATOR_FAILED",
                field_name,
                value,
            )
