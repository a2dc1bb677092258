"""Model base class.

A Model composes Fields into one record (or, when `many` is set, a
collection of records) stored at `config_path` in the ConfigStore, and
mediates every create/read/update/delete against it:

    class Gateway(Model):
        config_path = "gateways/gateway"
        many = True
        subsystem = "routing"

        name = StringField(required=True, unique=True)
        address = StringField(required=True, validators=[IPAddressValidator()])

    gateway = Gateway(data={"name": "gw1", "address": "10.0.0.1"}, store=store)
    gateway.create()

Every mutation runs inside `store.write_lock(...)`: the tree is reloaded, all
fields validate before anything is written, and the first failure aborts the
whole operation with nothing persisted.
"""

from __future__ import annotations

import importlib.util
import logging
import re
from typing import Any

from configforge.client import SYSTEM_CLIENT, Client
from configforge.errors import (
    ConflictError,
    FailedDependencyError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from configforge.fields.base import Field, internal_equal
from configforge.models.modelset import ModelSet
from configforge.models.registry import ModelRegistry
from configforge.store.store import ConfigStore
from configforge.types import Operation, SortOrder

logger = logging.getLogger(__name__)

_MISSING = object()

# Instance attributes, and names whose `validate_<name>` hook would shadow a model-level hook
_RESERVED_NAMES = {"id", "client", "store", "extra", "delete"}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NATURAL_CHUNK = re.compile(r"(\d+)")


def _to_display_name(name: str) -> str:
    """Convert a CamelCase class name to words ("StaticRoute" -> "Static Route")."""
    return _CAMEL_BOUNDARY.sub(" ", name)


def _as_id(key: Any) -> Any:
    return int(key) if str(key).isdigit() else key


def _sort_key(value: Any, natural: bool) -> tuple:
    if value is None:
        return (2, ())
    text = str(value)
    if natural:
        return (1, tuple(int(c) if c.isdigit() else c.lower() for c in _NATURAL_CHUNK.split(text)))
    try:
        return (0, float(text))
    except ValueError:
        return (1, text.lower())


class Model:
    """Base class for all models."""

    config_path: str | None = None
    internal_callable: str | None = None
    many: bool = False
    verbose_name: str = ""
    verbose_name_plural: str = ""
    sort_by_field: str | None = None
    sort_order: SortOrder = SortOrder.ASCENDING
    unique_together_fields: tuple[str, ...] = ()
    subsystem: str | None = None
    packages: tuple[str, ...] = ()
    package_includes: tuple[str, ...] = ()

    _fields: dict[str, Field] = {}
    _reverse_references: list[tuple[type[Model], str, str]] = []

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)

        if cls.config_path and cls.internal_callable:
            raise ServerError(
                message=f"Model '{cls.__name__}' cannot set both config_path and internal_callable.",
                response_id="MODEL_WITH_CONFIG_PATH_AND_INTERNAL_CALLABLE",
            )

        fields: dict[str, Field] = {}
        for base in reversed(cls.__mro__[1:]):
            fields.update(base.__dict__.get("_fields", {}))
        for name, value in cls.__dict__.items():
            if not isinstance(value, Field):
                continue
            if name in _RESERVED_NAMES or hasattr(Model, name):
                raise ServerError(
                    message=f"Model '{cls.__name__}' cannot declare a field named '{name}'.",
                    response_id="MODEL_FIELD_NAME_RESERVED",
                    data={"field": name},
                )
            fields[name] = value
        cls._fields = fields

        for name in cls.unique_together_fields:
            if name not in fields:
                raise ServerError(
                    message=f"unique_together_fields names unknown field '{name}'.",
                    response_id="MODEL_UNIQUE_TOGETHER_FIELD_NOT_FOUND",
                    data={"field": name},
                )

        if "verbose_name" not in cls.__dict__:
            cls.verbose_name = _to_display_name(cls.__name__)
        if "verbose_name_plural" not in cls.__dict__:
            cls.verbose_name_plural = f"{cls.verbose_name}s"

        cls._reverse_references = []
        ModelRegistry.register(cls)

    def __init__(
        self,
        id: Any = None,
        data: dict[str, Any] | None = None,
        client: Client | None = None,
        *,
        store: ConfigStore | None = None,
        skip_init: bool = False,
    ):
        if id is not None and data is not None:
            raise ServerError(
                message="Models accept either an id or representation data, not both.",
                response_id="MODEL_ID_AND_DATA_BOTH_PROVIDED",
            )

        self.client = client or SYSTEM_CLIENT
        self.store = store
        self.id = _as_id(id) if id is not None and self.many else None
        for name, field in self._fields.items():
            setattr(self, name, field.bind(self))

        if skip_init:
            return
        if data is not None:
            self.from_representation(data)
        elif self.id is not None:
            self.from_internal()
        elif not self.many and self.store is not None:
            self.from_internal()

    def __repr__(self) -> str:
        if self.many:
            return f"<{type(self).__name__} id={self.id!r}>"
        return f"<{type(self).__name__}>"

    # ------------------------------------------------------------------
    # Class-level introspection
    # ------------------------------------------------------------------

    @classmethod
    def declared_fields(cls) -> dict[str, Field]:
        """The declared (unbound) fields, in declaration order."""
        return dict(cls._fields)

    @classmethod
    def declared_field(cls, name: str) -> Field:
        if name not in cls._fields:
            raise KeyError(f"Model '{cls.__name__}' has no field '{name}'.")
        return cls._fields[name]

    @classmethod
    def add_reverse_reference(cls, referrer: type, field_name: str, target_field: str) -> None:
        """Record that `referrer.field_name` holds values of this model's `target_field`."""
        cls._reverse_references.append((referrer, field_name, target_field))

    @classmethod
    def get_references(cls) -> list[tuple[type[Model], str, str]]:
        """(referring model, referring field, own field) triples guarding deletes."""
        references = list(cls._reverse_references)
        for name, field in cls._fields.items():
            for model_name, referring_field in field.referenced_by.items():
                if not ModelRegistry.is_registered(model_name):
                    raise ServerError(
                        message=f"Field '{name}' is referenced by unknown model '{model_name}'.",
                        response_id="MODEL_REFERENCED_BY_MODEL_NOT_FOUND",
                        data={"model": model_name},
                    )
                references.append((ModelRegistry.get(model_name), referring_field, name))
        return references

    @classmethod
    def read_all(cls, store: ConfigStore, client: Client | None = None) -> ModelSet:
        """Every stored record of this model (one object for singletons)."""
        reader = cls(client=client, store=store, skip_init=True)
        if not cls.many:
            reader.from_internal()
            return ModelSet([reader])

        objects = []
        for record_id, record in reader.get_internal_records():
            obj = cls(client=client, store=store, skip_init=True)
            obj.id = record_id
            obj.from_internal_object(record)
            objects.append(obj)
        return ModelSet(objects)

    @classmethod
    def query(cls, store: ConfigStore, **lookups: Any) -> ModelSet:
        """Stored records matching the lookups (see ModelSet.filter)."""
        return cls.read_all(store).filter(**lookups)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def get_fields(self) -> dict[str, Field]:
        """This instance's bound fields, in declaration order."""
        return {name: getattr(self, name) for name in self._fields}

    def get_field(self, name: str) -> Field:
        if name not in self._fields:
            raise KeyError(f"Model '{type(self).__name__}' has no field '{name}'.")
        return getattr(self, name)

    def lookup(self, name: str) -> Any:
        """Representation value of a field, or the record id for "id"."""
        if name == "id":
            return self.id
        return self.get_field(name).value

    # ------------------------------------------------------------------
    # Internal data
    # ------------------------------------------------------------------

    def _require_store(self) -> ConfigStore:
        if self.store is None:
            raise ServerError(
                message=f"{self.verbose_name} has no ConfigStore attached.",
                response_id="MODEL_STORE_NOT_SET",
            )
        return self.store

    def get_internal_data(self) -> Any:
        """Raw stored data for this model: a record, or a collection of them."""
        if self.internal_callable:
            return getattr(self, self.internal_callable)()
        if self.config_path:
            return self._require_store().get(self.config_path)
        return None

    def get_internal_records(self) -> list[tuple[Any, dict[str, Any]]]:
        """(id, record) pairs of a many model, in stored order."""
        internal = self.get_internal_data()
        if internal is None or internal == "":
            return []
        if isinstance(internal, list):
            items = list(enumerate(internal))
        elif isinstance(internal, dict):
            items = [(_as_id(key), record) for key, record in internal.items()]
        else:
            raise ServerError(
                message=f"Stored data for {self.verbose_name_plural} is not a record collection.",
                response_id="CONFIG_PATH_DANGEROUS",
                data={"path": self.config_path},
            )

        records = []
        for record_id, record in items:
            if record is None:
                record = {}
            if not isinstance(record, dict):
                raise ServerError(
                    message=f"Stored {self.verbose_name} {record_id} is not a mapping.",
                    response_id="MODEL_INTERNAL_RECORD_NOT_MAPPING",
                    data={"id": record_id},
                )
            records.append((record_id, record))
        return records

    def _find_record(self, record_id: Any) -> dict[str, Any] | None:
        for stored_id, record in self.get_internal_records():
            if str(stored_id) == str(record_id):
                return record
        return None

    def sibling_records(self) -> list[tuple[Any, dict[str, Any]]]:
        """Other stored records of this model, excluding this one."""
        if not self.many or self.store is None:
            return []
        return [
            (record_id, record)
            for record_id, record in self.get_internal_records()
            if self.id is None or str(record_id) != str(self.id)
        ]

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def from_internal_object(self, record: dict[str, Any]) -> None:
        """Populate every field from a stored record."""
        for field in self.get_fields().values():
            if field.representation_only:
                continue
            raw = field.get_internal_from(record, _MISSING)
            if raw is _MISSING:
                field.from_internal_missing()
            else:
                field.from_internal(raw)

    def from_internal(self) -> None:
        """Load this model's stored record.

        Raises:
            ValidationError: If a many model has no id
            NotFoundError: If no record has this model's id
        """
        if not self.many:
            record = self.get_internal_data()
            self.from_internal_object(record if isinstance(record, dict) else {})
            return

        if self.id is None:
            raise ValidationError(
                message=f"An id is required to locate a {self.verbose_name}.",
                response_id="MODEL_REQUIRES_ID",
            )
        record = self._find_record(self.id)
        if record is None:
            raise NotFoundError(
                message=f"{self.verbose_name} with id {self.id} does not exist.",
                response_id="MODEL_OBJECT_NOT_FOUND",
                data={"id": self.id},
            )
        self.from_internal_object(record)

    def to_internal(self) -> dict[str, Any]:
        """The stored form of this model. Absent values are omitted."""
        record: dict[str, Any] = {}
        for field in self.get_fields().values():
            if field.representation_only or not field.conditions_met():
                continue
            internal = field.to_internal()
            if internal is None:
                continue
            container = record.setdefault(field.internal_namespace, {}) if field.internal_namespace else record
            container[field.internal_name] = internal
        return record

    def from_representation(self, data: dict[str, Any]) -> None:
        """Overlay a representation payload onto this model.

        An existing record (matched by `data["id"]` for many models) is loaded
        first, so a partial payload only changes the fields it names. Unknown
        keys and read-only fields are ignored.
        """
        if not isinstance(data, dict):
            raise ValidationError(
                message=f"{self.verbose_name} data must be an object.",
                response_id="MODEL_INVALID_DATA",
            )

        if self.many and data.get("id") is not None:
            self.id = _as_id(data["id"])
            if self.store is not None:
                record = self._find_record(self.id)
                if record is not None:
                    self.from_internal_object(record)
        elif not self.many and self.store is not None:
            self.from_internal()

        for name, field in self.get_fields().items():
            if name in data and not field.read_only:
                field.from_representation(data[name])

    def to_representation(self) -> dict[str, Any]:
        representation: dict[str, Any] = {"id": self.id} if self.many else {}
        for name, field in self.get_fields().items():
            if field.write_only or not field.conditions_met():
                continue
            representation[name] = field.to_representation()
        return representation

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> bool:
        """Validate every field in declaration order, then model-level rules.

        Each writable field runs its own validation followed by the
        `validate_<field>` hook, whose non-None return value replaces the
        field's value.
        """
        for name, field in self.get_fields().items():
            if field.read_only:
                continue
            field.validate()
            hook = getattr(self, f"validate_{name}", None)
            if callable(hook) and field.conditions_met():
                replacement = hook(field.value)
                if replacement is not None:
                    field.value = replacement

        self._validate_unique_together()
        self.validate_extra()
        return True

    def _validate_unique_together(self) -> None:
        if not self.unique_together_fields:
            return

        fields = [self.get_field(name) for name in self.unique_together_fields]
        current = [field.to_internal() for field in fields]
        for record_id, record in self.sibling_records():
            stored = [field.get_internal_from(record) for field in fields]
            if all(internal_equal(a, b) for a, b in zip(stored, current)):
                raise ValidationError(
                    message=(
                        f"{self.verbose_name} fields {list(self.unique_together_fields)} "
                        "must be unique together."
                    ),
                    response_id="MODEL_FIELDS_NOT_UNIQUE_TOGETHER",
                    data={"fields": list(self.unique_together_fields), "conflicting_id": record_id},
                )

    def validate_extra(self) -> None:
        """Cross-field validation hook. Override in subclasses."""

    def validate_delete(self) -> None:
        """Extra deletion gate. Override in subclasses to block a delete."""

    def check_packages(self) -> None:
        """Require every prerequisite package and importable include.

        Raises:
            FailedDependencyError: If a prerequisite is missing
        """
        installed = set(self.store.installed_packages) if self.store is not None else set()
        for package in self.packages:
            if package not in installed:
                raise FailedDependencyError(
                    message=f"{self.verbose_name} requires package '{package}' which is not installed.",
                    response_id="MODEL_MISSING_REQUIRED_PACKAGE",
                    data={"package": package},
                )
        for module in self.package_includes:
            try:
                found = importlib.util.find_spec(module) is not None
            except ModuleNotFoundError:
                found = False
            if not found:
                raise FailedDependencyError(
                    message=f"{self.verbose_name} requires module '{module}' which cannot be imported.",
                    response_id="MODEL_MISSING_PACKAGE_INCLUDE",
                    data={"module": module},
                )

    def _check_references(self) -> None:
        conflicts = []
        for referrer, referring_field, own_field in self.get_references():
            own_value = self.lookup(own_field)
            if own_value is None:
                continue
            for obj in referrer.read_all(self._require_store(), self.client):
                value = obj.get_field(referring_field).value
                values = value if isinstance(value, list) else [value]
                if any(str(v) == str(own_value) for v in values if v is not None):
                    conflicts.append(
                        {"model": referrer.__name__, "id": obj.id, "field": referring_field}
                    )

        if conflicts:
            names = ", ".join(
                f"{c['model']} {c['id']}" if c["id"] is not None else c["model"] for c in conflicts
            )
            raise ConflictError(
                message=f"{self.verbose_name} {self.id} is in use by {names}.",
                response_id="MODEL_IN_USE",
                data={"references": conflicts},
            )

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def read(self, all: bool = False) -> ModelSet | dict[str, Any]:
        """Every stored record as a ModelSet when `all` is set on a many
        model; otherwise this model's freshly loaded representation."""
        if all and self.many:
            return type(self).read_all(self._require_store(), self.client)
        self.from_internal()
        return self.to_representation()

    def _pre_save(self, operation: Operation) -> None:
        for field in self.get_fields().values():
            field.pre_save(operation)

    def create(self, apply: bool = False) -> Model:
        store = self._require_store()
        with store.write_lock(f"Added {self.verbose_name}", client=self.client, subsystem=self.subsystem):
            # A new record has no id until _create assigns one; an id carried
            # in the payload would hide that record from the uniqueness scans
            self.id = None
            self.check_packages()
            self._pre_save(Operation.CREATE)
            self.validate()
            self._create()
            self._sort()
        logger.info("Created %s %s", self.verbose_name, self.id)

        if apply:
            self.apply()
        return self

    def update(self, apply: bool = False) -> Model:
        store = self._require_store()
        with store.write_lock(f"Modified {self.verbose_name}", client=self.client, subsystem=self.subsystem):
            self.check_packages()
            self._pre_save(Operation.UPDATE)
            self.validate()
            self._update()
            self._sort()
        logger.info("Updated %s %s", self.verbose_name, self.id)

        if apply:
            self.apply()
        return self

    def delete(self, apply: bool = False) -> Model:
        store = self._require_store()
        with store.write_lock(f"Deleted {self.verbose_name}", client=self.client, subsystem=self.subsystem):
            self.check_packages()
            if self.many:
                self.from_internal()
            self.validate()
            self.validate_delete()
            self._check_references()
            self._delete()
        logger.info("Deleted %s %s", self.verbose_name, self.id)

        if apply:
            self.apply()
        return self

    def _record_path(self) -> str:
        if not self.many:
            return self.config_path
        if self.id is None:
            raise ValidationError(
                message=f"An id is required to locate a {self.verbose_name}.",
                response_id="MODEL_REQUIRES_ID",
            )
        if not self.store.exists(f"{self.config_path}/{self.id}"):
            raise NotFoundError(
                message=f"{self.verbose_name} with id {self.id} does not exist.",
                response_id="MODEL_OBJECT_NOT_FOUND",
                data={"id": self.id},
            )
        return f"{self.config_path}/{self.id}"

    def _create(self) -> None:
        """Append this model as a new record. Override for custom storage."""
        if not self.config_path or not self.many:
            raise ServerError(
                message=f"{self.verbose_name} does not support create without a custom _create().",
                response_id="MODEL_CREATE_REQUIRES_OVERRIDE",
            )
        self.id = self.store.next_id(self.config_path)
        self.store.set(f"{self.config_path}/{self.id}", self.to_internal())

    def _update(self) -> None:
        """Merge this model into its stored record, keeping unmanaged keys."""
        if not self.config_path:
            raise ServerError(
                message=f"{self.verbose_name} does not support update without a custom _update().",
                response_id="MODEL_UPDATE_REQUIRES_OVERRIDE",
            )
        path = self._record_path()
        record = self.store.get(path)
        if not isinstance(record, dict):
            record = {}

        for field in self.get_fields().values():
            if field.representation_only:
                continue
            container = record.get(field.internal_namespace) if field.internal_namespace else record
            if isinstance(container, dict):
                container.pop(field.internal_name, None)
                if field.internal_namespace and not container:
                    del record[field.internal_namespace]

        for key, value in self.to_internal().items():
            if isinstance(value, dict) and isinstance(record.get(key), dict):
                record[key].update(value)
            else:
                record[key] = value
        self.store.set(path, record)

    def _delete(self) -> None:
        """Remove this model's record. Override for custom storage."""
        if not self.config_path or not self.many:
            raise ServerError(
                message=f"{self.verbose_name} does not support delete without a custom _delete().",
                response_id="MODEL_DELETE_REQUIRES_OVERRIDE",
            )
        self.store.delete(self._record_path())
        self._renumber(self.get_internal_records())

    def _renumber(self, ordered: list[tuple[Any, dict[str, Any]]]) -> None:
        """Store the records keyed densely by position; this model's id follows its record."""
        if isinstance(self.store.get(self.config_path), list):
            self.store.set(self.config_path, [record for _, record in ordered])
        else:
            self.store.set(self.config_path, {str(i): record for i, (_, record) in enumerate(ordered)})

        for new_id, (old_id, _) in enumerate(ordered):
            if self.id is not None and str(old_id) == str(self.id):
                self.id = new_id
                break

    def _sort(self) -> None:
        """Re-sort and densely renumber the collection by `sort_by_field`."""
        if not self.many or not self.sort_by_field or not self.config_path:
            return

        field = self.get_field(self.sort_by_field)
        natural = self.sort_order == SortOrder.NATURAL
        ordered = sorted(
            self.get_internal_records(),
            key=lambda item: _sort_key(field.get_internal_from(item[1]), natural),
            reverse=self.sort_order == SortOrder.DESCENDING,
        )
        self._renumber(ordered)

    def apply(self) -> None:
        """Push the committed change to the running system. Override in subclasses."""
