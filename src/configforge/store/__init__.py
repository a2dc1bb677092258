"""Configuration store - path-addressed tree, write lock and audit trail."""

from configforge.store.audit import AuditEntry, AuditTrail, SubsystemTracker
from configforge.store.lock import WriteLock
from configforge.store.store import ConfigStore, split_path

__all__ = [
    "AuditEntry",
    "AuditTrail",
    "ConfigStore",
    "SubsystemTracker",
    "WriteLock",
    "split_path",
]
