"""Numeric field types."""

import re
import time
from typing import Any

from configforge.errors import ServerError
from configforge.fields.base import Field
from configforge.types import Operation
from configforge.validators.canned import NumericRangeValidator


_INTEGER_TEXT = re.compile(r"-?[0-9]+")


class IntegerField(Field):
    """Integer stored as its decimal string. Always range-checked."""

    type = int
    type_label = "integer"

    def __init__(self, minimum: int = 0, maximum: int = 99999999999, **kwargs: Any):
        self.minimum = minimum
        self.maximum = maximum
        validators = [NumericRangeValidator(minimum, maximum)]
        validators.extend(kwargs.pop("validators", None) or [])
        super().__init__(validators=validators, **kwargs)

    def _to_internal(self, value: Any) -> Any:
        return str(value)

    def _from_internal(self, internal: Any) -> Any:
        if isinstance(internal, int) and not isinstance(internal, bool):
            return internal
        if not isinstance(internal, str) or not _INTEGER_TEXT.fullmatch(internal):
            raise ServerError(
                message=f"Field '{self.name}' has non-integer internal value {internal!r}.",
                response_id="INTEGER_FIELD_WITH_NON_INTEGER_INTERNAL_VALUE",
                data={"field": self.name},
            )
        return int(internal)


class FloatField(Field):
    """Floating point number; integers are accepted on input."""

    type = (float, int)
    type_label = "number"

    def _to_internal(self, value: Any) -> Any:
        return str(float(value))

    def _from_internal(self, internal: Any) -> Any:
        try:
            return float(str(internal).strip())
        except ValueError:
            raise ServerError(
                message=f"Field '{self.name}' has non-numeric internal value {internal!r}.",
                response_id="FLOAT_FIELD_WITH_NON_FLOAT_INTERNAL_VALUE",
                data={"field": self.name},
            ) from None


class UnixTimeField(IntegerField):
    """Seconds since the epoch, optionally stamped on create and/or update."""

    def __init__(self, auto_add_now: bool = False, auto_update_now: bool = False, **kwargs: Any):
        self.auto_add_now = auto_add_now
        self.auto_update_now = auto_update_now
        if auto_add_now or auto_update_now:
            kwargs.setdefault("read_only", True)
        super().__init__(**kwargs)

    def pre_save(self, operation: Operation) -> None:
        if operation == Operation.CREATE and (self.auto_add_now or self.auto_update_now):
            self.value = int(time.time())
        elif operation == Operation.UPDATE and self.auto_update_now:
            self.value = int(time.time())
