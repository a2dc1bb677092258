"""Model engine - records composed of Fields, persisted in the ConfigStore."""

from configforge.models.base import Model
from configforge.models.modelset import ModelSet
from configforge.models.registry import ModelRegistry
from configforge.types import Operation, SortOrder

__all__ = ["Model", "ModelRegistry", "ModelSet", "Operation", "SortOrder"]
