"""Process-wide configuration tree addressed by slash-delimited paths.

The tree is loaded from a YAML file when the store is created and persisted
in full after every successful write. Writers must hold the exclusive write
lock for the whole read-modify-write-persist cycle:

    with store.write_lock("Added gateway", client=client, subsystem="routing"):
        store.set("gateways/gateway/0", {"name": "gw1"})

Readers never block; they see the tree as of the last load or write made by
this process.
"""

import copy
import logging
import os
import tempfile
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import yaml

from configforge.client import SYSTEM_CLIENT, Client
from configforge.config import StoreConfig
from configforge.errors import ServerError
from configforge.store.audit import AuditTrail, SubsystemTracker
from configforge.store.lock import WriteLock

logger = logging.getLogger(__name__)

_MISSING = object()


def split_path(path: str) -> list[str]:
    """Split "a/b/c" into ["a", "b", "c"]; empty segments are dropped."""
    return [segment for segment in str(path).split("/") if segment]


def _normalize(node: Any) -> Any:
    """Coerce mapping keys to strings so "0" and 0 address the same record."""
    if isinstance(node, dict):
        return {str(k): _normalize(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_normalize(v) for v in node]
    return node


class ConfigStore:
    """Shared hierarchical configuration store."""

    def __init__(
        self,
        path: Path | str,
        lock_path: Path | str | None = None,
        state_dir: Path | str | None = None,
        lock_attempts: int = 60,
        lock_interval: float = 1.0,
        installed_packages: Iterable[str] = (),
    ):
        self.path = Path(path)
        lock_path = Path(lock_path) if lock_path else self.path.with_name(self.path.name + ".lock")
        state_dir = Path(state_dir) if state_dir else self.path.parent

        self.installed_packages = set(installed_packages)
        self.audit = AuditTrail(state_dir / f"{self.path.stem}.audit.jsonl")
        self.subsystems = SubsystemTracker(state_dir)
        self._lock = WriteLock(lock_path, attempts=lock_attempts, interval=lock_interval)
        self._tree: dict[str, Any] = {}
        self._lock_depth = 0
        self._changed_paths: list[str] = []
        self._pending_subsystems: set[str] = set()
        self.reload()

    @classmethod
    def from_config(cls, config: StoreConfig) -> "ConfigStore":
        return cls(
            path=config.path,
            lock_path=config.resolved_lock_path,
            state_dir=config.resolved_state_dir,
            lock_attempts=config.lock_attempts,
            lock_interval=config.lock_interval,
            installed_packages=config.packages,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def reload(self) -> None:
        """Re-read the persisted tree from disk."""
        if not self.path.exists():
            self._tree = {}
            return

        with self.path.open(encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh)
            except yaml.YAMLError as e:
                raise ServerError(
                    message=f"Configuration file {self.path} could not be parsed: {e}",
                    response_id="CONFIG_STORE_CORRUPT",
                ) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ServerError(
                message=f"Configuration file {self.path} does not contain a mapping.",
                response_id="CONFIG_STORE_CORRUPT",
            )
        self._tree = _normalize(data)

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                yaml.safe_dump(self._tree, fh, default_flow_style=False, sort_keys=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _lookup(self, path: str) -> Any:
        node: Any = self._tree
        for segment in split_path(path):
            if isinstance(node, dict):
                node = node.get(segment, _MISSING)
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                node = node[int(segment)]
            else:
                return _MISSING
            if node is _MISSING:
                return _MISSING
        return node

    def get(self, path: str, default: Any = None) -> Any:
        """Return a copy of the value at path, or default when absent."""
        node = self._lookup(path)
        if node is _MISSING:
            return default
        return copy.deepcopy(node)

    def exists(self, path: str) -> bool:
        return self._lookup(path) is not _MISSING

    def enabled(self, path: str, key: str) -> bool:
        """True when `key` is present under `path`, whatever its value."""
        node = self._lookup(path)
        return isinstance(node, dict) and key in node

    def next_id(self, path: str) -> int:
        """Id to assign to the next record appended to the collection at path.

        Record collections are keyed densely by position ("0" .. "n-1"), so
        the next id is the record count.

        Raises:
            ServerError: If the path holds data that is not a dense record collection
        """
        node = self._lookup(path)
        if node is _MISSING or node is None:
            return 0
        if isinstance(node, (dict, list, str)) and len(node) == 0:
            return 0
        if isinstance(node, list):
            return len(node)
        if isinstance(node, dict) and set(node) == {str(i) for i in range(len(node))}:
            return len(node)

        raise ServerError(
            message=f"Config path '{path}' holds data that is not a record collection.",
            response_id="CONFIG_PATH_DANGEROUS",
            data={"path": path},
        )

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._tree)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @property
    def is_locked(self) -> bool:
        return self._lock_depth > 0

    def _require_lock(self, path: str) -> None:
        if not self.is_locked:
            raise ServerError(
                message=f"Cannot modify '{path}' without holding the config write lock.",
                response_id="CONFIG_STORE_NOT_LOCKED",
            )

    def set(self, path: str, value: Any) -> None:
        """Set the value at path, creating intermediate mappings."""
        self._require_lock(path)
        segments = split_path(path)
        if not segments:
            if not isinstance(value, dict):
                raise ServerError(
                    message="The configuration root must be a mapping.",
                    response_id="CONFIG_ROOT_NOT_MAPPING",
                )
            self._tree = _normalize(copy.deepcopy(value))
            self._changed_paths.append("")
            return

        node: Any = self._tree
        for segment in segments[:-1]:
            if isinstance(node, dict):
                child = node.get(segment)
                if not isinstance(child, (dict, list)):
                    child = {}
                    node[segment] = child
                node = child
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                child = node[int(segment)]
                if not isinstance(child, (dict, list)):
                    child = {}
                    node[int(segment)] = child
                node = child
            else:
                raise ServerError(
                    message=f"Config path '{path}' cannot be traversed at '{segment}'.",
                    response_id="CONFIG_PATH_NOT_TRAVERSABLE",
                    data={"path": path},
                )

        leaf = segments[-1]
        value = _normalize(copy.deepcopy(value))
        if isinstance(node, dict):
            node[leaf] = value
        elif isinstance(node, list) and leaf.isdigit() and int(leaf) <= len(node):
            if int(leaf) == len(node):
                node.append(value)
            else:
                node[int(leaf)] = value
        else:
            raise ServerError(
                message=f"Config path '{path}' cannot be assigned.",
                response_id="CONFIG_PATH_NOT_TRAVERSABLE",
                data={"path": path},
            )
        self._changed_paths.append(path)

    def delete(self, path: str) -> Any:
        """Remove the node at path. Returns the removed value, or None."""
        self._require_lock(path)
        segments = split_path(path)
        if not segments:
            removed, self._tree = self._tree, {}
            self._changed_paths.append("")
            return removed

        parent = self._lookup("/".join(segments[:-1]))
        leaf = segments[-1]
        if isinstance(parent, dict) and leaf in parent:
            removed = parent.pop(leaf)
        elif isinstance(parent, list) and leaf.isdigit() and int(leaf) < len(parent):
            removed = parent.pop(int(leaf))
        else:
            return None

        self._changed_paths.append(path)
        return removed

    @contextmanager
    def write_lock(
        self,
        note: str,
        client: Client | None = None,
        subsystem: str | None = None,
    ) -> Iterator["ConfigStore"]:
        """Hold the exclusive write lock for a read-modify-write cycle.

        The tree is reloaded once the lock is held. If the block completes and
        changed anything, the whole tree is persisted, the change is recorded
        in the audit trail and `subsystem` is marked dirty. If the block
        raises, the in-memory tree is restored and nothing is written.

        Nested blocks join the outermost one.
        """
        client = client or SYSTEM_CLIENT

        if self._lock_depth:
            if subsystem:
                self._pending_subsystems.add(subsystem)
            self._lock_depth += 1
            try:
                yield self
            finally:
                self._lock_depth -= 1
            return

        self._lock.acquire()
        try:
            self.reload()
            snapshot = copy.deepcopy(self._tree)
            self._changed_paths = []
            self._pending_subsystems = {subsystem} if subsystem else set()
            self._lock_depth = 1
            try:
                yield self
            except BaseException:
                self._tree = snapshot
                raise
            finally:
                self._lock_depth = 0

            if self._changed_paths:
                self._commit(note, client, snapshot)
        finally:
            self._lock.release()

    def _commit(self, note: str, client: Client, snapshot: dict[str, Any]) -> None:
        self._tree["revision"] = {
            "time": int(time.time()),
            "description": f"{client}: {note}",
            "username": str(client),
        }
        try:
            self._persist()
        except BaseException:
            # Memory must match what is on disk
            self._tree = snapshot
            self._changed_paths = []
            self._pending_subsystems = set()
            raise
        subsystems = sorted(self._pending_subsystems)
        self.audit.record(self._changed_paths, note, client, subsystems=subsystems)
        for subsystem in subsystems:
            self.subsystems.mark_dirty(subsystem)
        self._changed_paths = []
        self._pending_subsystems = set()

    def write(
        self,
        path: str,
        value: Any,
        note: str,
        client: Client | None = None,
        subsystem: str | None = None,
    ) -> None:
        """Set a single path under its own write lock."""
        with self.write_lock(note, client=client, subsystem=subsystem):
            self.set(path, value)
