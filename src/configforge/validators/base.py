"""Base class for single-value validators."""

from typing import Any

from configforge.errors import ValidationError


class Validator:
    """A reusable predicate over a single field value.

    Validators are stateless apart from their construction parameters. They
    run in the order a Field declares them and raise ValidationError on the
    first rejection. They never modify the value.
    """

    def validate(self, value: Any, field_name: str) -> None:
        """Validate the value. Override in subclasses."""
        raise NotImplementedError("Subclasses must implement validate()")

    def fail(self, message: str, response_id: str, field_name: str, value: Any) -> None:
        raise ValidationError(
            message=message,
            response_id=response_id,
            data={"field": field_name, "value": value},
        )
