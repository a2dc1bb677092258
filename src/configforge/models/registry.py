"""Model registry for configforge.

Every Model subclass registers itself here when its class is created, so
ForeignModelField and `referenced_by` declarations can name their targets
as strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from configforge.models.base import Model


class ModelRegistry:
    """Registry of Model classes by class name.

    Example:
        class Gateway(Model):
            ...

        ModelRegistry.get("Gateway")  # -> Gateway
    """

    _models: dict[str, type[Model]] = {}

    @classmethod
    def register(cls, model_class: type[Model]) -> None:
        """Register a Model class under its class name.

        Re-registering a name replaces the earlier class, so a redefined
        model (e.g. in a reloaded module) wins.
        """
        cls._models[model_class.__name__] = model_class

    @classmethod
    def get(cls, name: str) -> type[Model]:
        """Get a registered Model class by name.

        Raises:
            KeyError: If no Model with that name is registered
        """
        if name not in cls._models:
            raise KeyError(f"Model '{name}' is not registered.")
        return cls._models[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._models

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered model names."""
        return sorted(cls._models)

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._models.clear()
