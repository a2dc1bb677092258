"""Field base class.

A Field is a typed, named unit of data inside a Model. It converts between
the representation form exchanged with callers and the internal form kept in
the ConfigStore, and validates its own value:

1. null / required / empty policy (and representation type)
2. cardinality bounds for many fields
3. closed-choice membership
4. attached Validators, in declared order
5. uniqueness among sibling records

Fields are declared as class attributes of a Model. The Model gives every
instance its own bound copy, whose `context` is a weak reference back to the
owning Model instance.
"""

from __future__ import annotations

import copy
import weakref
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from configforge.errors import ServerError, ValidationError
from configforge.types import Operation
from configforge.validators.base import Validator

if TYPE_CHECKING:
    from configforge.models.base import Model


class Field:
    """Base class for all field types."""

    # Python type(s) accepted for each representation value
    type: type | tuple[type, ...] = str
    type_label: str = "string"

    def __init__(
        self,
        default: Any = None,
        default_callable: Callable[[], Any] | None = None,
        required: bool = False,
        unique: bool = False,
        allow_null: bool = False,
        allow_empty: bool = False,
        read_only: bool = False,
        write_only: bool = False,
        representation_only: bool = False,
        many: bool = False,
        many_minimum: int = 0,
        many_maximum: int = 128,
        delimiter: str | None = ",",
        choices: list[Any] | dict[Any, str] | None = None,
        choices_callable: Callable[[], list[Any] | dict[Any, str]] | None = None,
        conditions: dict[str, Any] | None = None,
        validators: list[Validator] | None = None,
        internal_name: str | None = None,
        internal_namespace: str | None = None,
        referenced_by: dict[str, str] | None = None,
        verbose_name: str = "",
        help_text: str = "",
    ):
        if many and default is None and default_callable is None and not required:
            default = []

        self.name = ""
        self.internal_name = internal_name or ""
        self.internal_namespace = internal_namespace
        self.default = default
        self.default_callable = default_callable
        self.required = required
        self.unique = unique
        self.allow_null = allow_null
        self.allow_empty = allow_empty
        self.read_only = read_only
        self.write_only = write_only
        self.representation_only = representation_only
        self.many = many
        self.many_minimum = many_minimum
        self.many_maximum = many_maximum
        self.delimiter = delimiter
        self.choices = choices
        self.choices_callable = choices_callable
        self.conditions = dict(conditions or {})
        self.validators = list(validators or [])
        self.referenced_by = dict(referenced_by or {})
        self.verbose_name = verbose_name
        self.help_text = help_text
        self.value: Any = None
        self._context: weakref.ReferenceType[Model] | None = None

        self._check_construction()

    def _check_construction(self) -> None:
        has_default = self.default is not None or self.default_callable is not None
        if self.required and has_default:
            raise ServerError(
                message="Required fields cannot declare a default value.",
                response_id="FIELD_REQUIRED_WITH_DEFAULT",
            )
        if not self.required and not has_default and not self.allow_null and not self.read_only:
            raise ServerError(
                message="Non-required fields must declare a default unless null is allowed.",
                response_id="FIELD_NO_DEFAULT_WITH_NULL_NOT_ALLOWED",
            )
        if self.many_minimum > self.many_maximum:
            raise ServerError(
                message=f"many_minimum ({self.many_minimum}) exceeds many_maximum ({self.many_maximum}).",
                response_id="FIELD_MANY_MINIMUM_EXCEEDS_MAXIMUM",
            )
        if self.read_only and self.write_only:
            raise ServerError(
                message="Fields cannot be both read-only and write-only.",
                response_id="FIELD_READ_ONLY_AND_WRITE_ONLY",
            )

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        if not self.internal_name:
            self.internal_name = name
        if not self.verbose_name:
            self.verbose_name = name.replace("_", " ")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} value={self.value!r}>"

    # ------------------------------------------------------------------
    # Binding to a Model instance
    # ------------------------------------------------------------------

    def bind(self, model: Model) -> Field:
        """Return a copy of this declared field bound to a Model instance."""
        bound = copy.copy(self)
        bound._context = weakref.ref(model)
        bound.value = bound.get_default()
        return bound

    @property
    def context(self) -> Model | None:
        """The owning Model instance, if it is still alive."""
        return self._context() if self._context is not None else None

    def get_default(self) -> Any:
        if self.default_callable is not None:
            return self.default_callable()
        return copy.deepcopy(self.default)

    def get_choices(self) -> list[Any]:
        choices = self.choices_callable() if self.choices_callable else self.choices
        if not choices:
            return []
        return list(choices)

    def get_choice_label(self, value: Any) -> str:
        """Verbose label for a choice, falling back to the value itself."""
        choices = self.choices_callable() if self.choices_callable else self.choices
        if isinstance(choices, dict):
            return choices.get(value, str(value))
        return str(value)

    def conditions_met(self) -> bool:
        """Whether sibling field values allow this field to participate."""
        model = self.context
        if not self.conditions or model is None:
            return True
        for sibling_name, expected in self.conditions.items():
            sibling_value = model.get_field(sibling_name).value
            if isinstance(expected, (list, tuple, set)):
                if sibling_value not in expected:
                    return False
            elif sibling_value != expected:
                return False
        return True

    def pre_save(self, operation: Operation) -> None:
        """Hook run before validation on create/update. Override in subclasses."""

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def is_type(self, value: Any) -> bool:
        if isinstance(value, bool) and self.type is not bool and not (
            isinstance(self.type, tuple) and bool in self.type
        ):
            return False
        return isinstance(value, self.type)

    def _to_internal(self, value: Any) -> Any:
        """Convert a single representation value. Override in subclasses."""
        return str(value)

    def _from_internal(self, internal: Any) -> Any:
        """Convert a single internal value. Override in subclasses."""
        if isinstance(internal, (dict, list)):
            raise ServerError(
                message=f"Field '{self.name}' has a structured internal value where a scalar was expected.",
                response_id="FIELD_INVALID_INTERNAL_VALUE",
                data={"field": self.name},
            )
        return str(internal)

    def to_internal(self) -> Any:
        """Internal form of the current value. None means the key is absent."""
        if self.value is None:
            return None

        values = self.value if self.many else [self.value]
        if self.many and not isinstance(values, list):
            raise ServerError(
                message=f"Field '{self.name}' is a many field but its value is not a list.",
                response_id="FIELD_MANY_VALUE_NOT_LIST",
                data={"field": self.name},
            )
        for value in values:
            if not self.is_type(value):
                raise ServerError(
                    message=f"Field '{self.name}' cannot encode {type(value).__name__} value {value!r}.",
                    response_id="FIELD_INVALID_REPRESENTATION_TYPE",
                    data={"field": self.name},
                )

        if not self.many:
            return self._to_internal(self.value)

        internal = [self._to_internal(value) for value in values]
        if self.delimiter is None:
            return internal
        return self.delimiter.join(str(item) for item in internal)

    def from_internal(self, internal: Any) -> None:
        """Populate the value from its stored internal form."""
        if internal is None:
            self.value = None
            return

        if not self.many:
            self.value = self._from_internal(internal)
            return

        if isinstance(internal, list):
            items = internal
        elif self.delimiter is not None and isinstance(internal, str):
            items = internal.split(self.delimiter) if internal != "" else []
        else:
            items = [internal]
        self.value = [self._from_internal(item) for item in items]

    def from_internal_missing(self) -> None:
        """Populate the value when the stored record lacks this field's key."""
        self.value = self.get_default()

    def get_internal_from(self, record: dict[str, Any], default: Any = None) -> Any:
        """Extract this field's raw internal value from a stored record."""
        container = record
        if self.internal_namespace:
            container = record.get(self.internal_namespace)
        if not isinstance(container, dict):
            return default
        return container.get(self.internal_name, default)

    def to_representation(self) -> Any:
        return copy.deepcopy(self.value)

    def from_representation(self, value: Any) -> None:
        self.value = copy.deepcopy(value)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def fail(self, message: str, response_id: str, **data: Any) -> None:
        raise ValidationError(
            message=message,
            response_id=response_id,
            data={"field": self.name, **data},
        )

    def validate(self) -> bool:
        """Validate the current value. Raises ValidationError on the first failure."""
        if not self.conditions_met():
            return True

        value = self.value
        if value is None:
            if self.required:
                self.fail(f"Field '{self.name}' is required.", "FIELD_REQUIRED")
            if not self.allow_null:
                self.fail(f"Field '{self.name}' cannot be null.", "FIELD_NULL_NOT_ALLOWED")
            return True

        if self.many:
            if not isinstance(value, list):
                self.fail(
                    f"Field '{self.name}' must be a list of {self.type_label} values.",
                    "FIELD_INVALID_TYPE",
                    value=value,
                )
            if self.required and not value:
                self.fail(f"Field '{self.name}' is required.", "FIELD_REQUIRED")
            items = value
        else:
            items = [value]

        for item in items:
            self._validate_type(item)
            if item == "" and not self.allow_empty:
                self.fail(f"Field '{self.name}' cannot be empty.", "FIELD_EMPTY_NOT_ALLOWED")

        if self.many:
            self._validate_cardinality(items)

        items = [item for item in items if item != ""]
        choices = self.get_choices()
        if choices:
            for item in items:
                if item not in choices:
                    self.fail(
                        f"Field '{self.name}' must be one of {choices}, received {item!r}.",
                        "FIELD_INVALID_CHOICE",
                        value=item,
                        choices=choices,
                    )

        for item in items:
            for validator in self.validators:
                validator.validate(item, self.name)
            self.validate_item(item)

        if self.unique:
            self._validate_unique()

        return True

    def _validate_type(self, item: Any) -> None:
        if not self.is_type(item):
            self.fail(
                f"Field '{self.name}' must be of type {self.type_label}, received {type(item).__name__}.",
                "FIELD_INVALID_TYPE",
                value=item,
            )

    def _validate_cardinality(self, items: list[Any]) -> None:
        if len(items) < self.many_minimum:
            self.fail(
                f"Field '{self.name}' requires at least {self.many_minimum} values.",
                "FIELD_MANY_MINIMUM_NOT_MET",
                count=len(items),
            )
        if len(items) > self.many_maximum:
            self.fail(
                f"Field '{self.name}' allows at most {self.many_maximum} values.",
                "FIELD_MANY_MAXIMUM_EXCEEDED",
                count=len(items),
            )

    def validate_item(self, item: Any) -> None:
        """Type-specific check on a single value. Override in subclasses."""

    def _validate_unique(self) -> None:
        model = self.context
        if model is None:
            return

        internal = self.to_internal()
        for record_id, record in model.sibling_records():
            stored = self.get_internal_from(record)
            if internal_equal(stored, internal):
                self.fail(
                    f"Field '{self.name}' must be unique; value {self.value!r} is already in use.",
                    "FIELD_NOT_UNIQUE",
                    value=self.value,
                    conflicting_id=record_id,
                )


def internal_equal(stored: Any, internal: Any) -> bool:
    """Compare internal values, tolerating scalars stored without quoting."""
    if stored is None or internal is None:
        return stored is internal
    if stored == internal:
        return True
    if isinstance(stored, list) or isinstance(internal, list):
        return False
    return str(stored) == str(internal)
