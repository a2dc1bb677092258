"""Date/time field stored as formatted text."""

from datetime import datetime
from typing import Any

from configforge.errors import ServerError
from configforge.fields.base import Field
from configforge.types import Operation


class DateTimeField(Field):
    type = str
    type_label = "datetime"

    def __init__(
        self,
        datetime_format: str = "%Y-%m-%d %H:%M:%S",
        auto_add_now: bool = False,
        auto_update_now: bool = False,
        **kwargs: Any,
    ):
        self.datetime_format = datetime_format
        self.auto_add_now = auto_add_now
        self.auto_update_now = auto_update_now
        if auto_add_now or auto_update_now:
            kwargs.setdefault("read_only", True)
        super().__init__(**kwargs)

    def _parses(self, value: str) -> bool:
        try:
            datetime.strptime(value, self.datetime_format)
        except ValueError:
            return False
        return True

    def validate_item(self, item: Any) -> None:
        if not self._parses(item):
            self.fail(
                f"Field '{self.name}' must match the format '{self.datetime_format}'.",
                "DATETIME_FIELD_INVALID_FORMAT",
                value=item,
            )

    def _to_internal(self, value: Any) -> Any:
        return value

    def _from_internal(self, internal: Any) -> Any:
        value = str(internal)
        if not self._parses(value):
            raise ServerError(
                message=f"Field '{self.name}' has internal value {value!r} not in format '{self.datetime_format}'.",
                response_id="DATETIME_FIELD_WITH_INVALID_INTERNAL_VALUE",
                data={"field": self.name},
            )
        return value

    def pre_save(self, operation: Operation) -> None:
        now = datetime.now().strftime(self.datetime_format)
        if operation == Operation.CREATE and (self.auto_add_now or self.auto_update_now):
            self.value = now
        elif operation == Operation.UPDATE and self.auto_update_now:
            self.value = now
