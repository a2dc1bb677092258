"""String field types."""

import base64
import binascii
import uuid
from typing import Any

from configforge.errors import ServerError
from configforge.fields.base import Field
from configforge.types import Operation
from configforge.validators.canned import LengthValidator


class StringField(Field):
    """Free text with length bounds."""

    type = str
    type_label = "string"

    def __init__(self, minimum_length: int = 0, maximum_length: int = 1024, **kwargs: Any):
        self.minimum_length = minimum_length
        self.maximum_length = maximum_length
        validators = [LengthValidator(minimum_length, maximum_length)]
        validators.extend(kwargs.pop("validators", None) or [])
        super().__init__(validators=validators, **kwargs)

    def _to_internal(self, value: Any) -> Any:
        return value


class UIDField(StringField):
    """Read-only unique identifier generated when the record is created."""

    def __init__(self, **kwargs: Any):
        kwargs.setdefault("read_only", True)
        super().__init__(**kwargs)

    def pre_save(self, operation: Operation) -> None:
        if operation == Operation.CREATE and not self.value:
            self.value = uuid.uuid4().hex


class Base64Field(StringField):
    """Plain text in representation, base64 encoded in storage."""

    def _to_internal(self, value: Any) -> Any:
        return base64.b64encode(value.encode("utf-8")).decode("ascii")

    def _from_internal(self, internal: Any) -> Any:
        try:
            return base64.b64decode(str(internal), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ServerError(
                message=f"Field '{self.name}' has an internal value that is not valid base64.",
                response_id="BASE64_FIELD_WITH_INVALID_INTERNAL_VALUE",
                data={"field": self.name},
            ) from None
