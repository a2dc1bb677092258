"""Boolean field stored as a presence/sentinel value."""

from typing import Any

from configforge.errors import ServerError
from configforge.fields.base import Field


class BooleanField(Field):
    """True is stored as `indicates_true`; False as `indicates_false`.

    When `indicates_false` is None (the default) a False value removes the key
    from the record, and a missing key reads back as False. Any stored value
    other than `indicates_true` reads back as False.
    """

    type = bool
    type_label = "boolean"

    def __init__(
        self,
        indicates_true: str = "",
        indicates_false: str | None = None,
        default: bool | None = None,
        **kwargs: Any,
    ):
        if kwargs.get("many"):
            raise ServerError(
                message="Boolean fields cannot be many fields.",
                response_id="BOOLEAN_FIELD_CANNOT_BE_MANY",
            )
        if default is None and not kwargs.get("required"):
            default = False
        self.indicates_true = indicates_true
        self.indicates_false = indicates_false
        super().__init__(default=default, **kwargs)

    def _to_internal(self, value: Any) -> Any:
        return self.indicates_true if value else self.indicates_false

    def _from_internal(self, internal: Any) -> Any:
        return internal == self.indicates_true or str(internal) == str(self.indicates_true)

    def from_internal(self, internal: Any) -> None:
        # An empty YAML scalar loads as None; treat it as an empty marker
        self.value = self._from_internal("" if internal is None else internal)

    def from_internal_missing(self) -> None:
        self.value = False
