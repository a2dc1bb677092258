"""Field referencing a record of another many Model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from configforge.errors import ServerError
from configforge.fields.base import Field
from configforge.models.registry import ModelRegistry

if TYPE_CHECKING:
    from configforge.models.base import Model
    from configforge.models.modelset import ModelSet


class ForeignModelField(Field):
    """Reference to another Model's record.

    The representation value is the target record's `model_field` value; the
    stored value is its `model_field_internal` value. Both conversions query
    the target Model live. A value that matches no record passes through
    unchanged, so validation (not conversion) is where a dangling reference
    is rejected.

    Args:
        model_name: Target Model class, or the name it is registered under
        model_field: Target field exposed in the representation ("id" allowed)
        model_field_internal: Target field stored internally (defaults to model_field)
        allowed_keywords: Literal values accepted without a matching record
        model_query: Lookups restricting which target records are eligible
    """

    def __init__(
        self,
        model_name: str | type[Model],
        model_field: str,
        model_field_internal: str | None = None,
        allowed_keywords: list[str] | tuple[str, ...] = (),
        model_query: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        self.model = self._resolve_model(model_name)
        self.model_field = model_field
        self.model_field_internal = model_field_internal or model_field
        self.allowed_keywords = tuple(allowed_keywords)
        self.model_query = dict(model_query or {})

        self._check_referenced_field(self.model_field)
        self._check_referenced_field(self.model_field_internal)
        self.type = int if model_field == "id" else self.model.declared_field(model_field).type
        if self.allowed_keywords:
            self.type = (self.type, str) if not isinstance(self.type, tuple) else (*self.type, str)
        super().__init__(**kwargs)

    @staticmethod
    def _resolve_model(model_name: str | type[Model]) -> type[Model]:
        if not isinstance(model_name, str):
            return model_name
        if not ModelRegistry.is_registered(model_name):
            raise ServerError(
                message=f"ForeignModelField references unknown model '{model_name}'.",
                response_id="FOREIGN_MODEL_FIELD_MODEL_NOT_FOUND",
                data={"model": model_name},
            )
        return ModelRegistry.get(model_name)

    def _check_referenced_field(self, field_name: str) -> None:
        if not self.model.many:
            raise ServerError(
                message=f"ForeignModelField target '{self.model.__name__}' is not a many model.",
                response_id="FOREIGN_MODEL_FIELD_MODEL_NOT_MANY",
                data={"model": self.model.__name__},
            )
        if field_name == "id":
            return
        field = self.model.declared_fields().get(field_name)
        if field is None:
            raise ServerError(
                message=f"Model '{self.model.__name__}' has no field '{field_name}'.",
                response_id="FOREIGN_MODEL_FIELD_REFERENCED_FIELD_NOT_FOUND",
                data={"model": self.model.__name__, "field": field_name},
            )
        if not field.unique:
            raise ServerError(
                message=f"Field '{self.model.__name__}.{field_name}' must be unique to be referenced.",
                response_id="FOREIGN_MODEL_FIELD_REFERENCED_FIELD_NOT_UNIQUE",
                data={"model": self.model.__name__, "field": field_name},
            )

    def __set_name__(self, owner: type, name: str) -> None:
        super().__set_name__(owner, name)
        self.model.add_reverse_reference(owner, name, self.model_field)

    # ------------------------------------------------------------------
    # Target lookups
    # ------------------------------------------------------------------

    def get_related_models(self) -> ModelSet | None:
        """Eligible target records, or None when no store is reachable."""
        context = self.context
        if context is None or context.store is None:
            return None
        return self.model.query(context.store, **self.model_query)

    def _find(self, value: Any, field_name: str) -> Model | None:
        related = self.get_related_models()
        if related is None:
            return None
        for obj in related:
            if str(obj.lookup(field_name)) == str(value):
                return obj
        return None

    def get_related_model(self) -> Model | None:
        """The target record matching the current (single) value."""
        if self.value is None or self.many:
            return None
        return self._find(self.value, self.model_field)

    # ------------------------------------------------------------------
    # Conversion & validation
    # ------------------------------------------------------------------

    def _to_internal(self, value: Any) -> Any:
        if value in self.allowed_keywords:
            return value
        obj = self._find(value, self.model_field)
        return str(obj.lookup(self.model_field_internal)) if obj is not None else str(value)

    def _from_internal(self, internal: Any) -> Any:
        if internal in self.allowed_keywords:
            return internal
        obj = self._find(internal, self.model_field_internal)
        if obj is None:
            return internal
        return obj.lookup(self.model_field)

    def validate_item(self, item: Any) -> None:
        if item in self.allowed_keywords:
            return
        if self.get_related_models() is None:
            return
        if self._find(item, self.model_field) is None:
            self.fail(
                f"Field '{self.name}' references {self.model.verbose_name} '{item}' which does not exist.",
                "FOREIGN_MODEL_FIELD_VALUE_NOT_FOUND",
                value=item,
                model=self.model.__name__,
            )
