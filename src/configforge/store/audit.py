"""Audit trail and subsystem dirty markers for configuration writes."""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from configforge.client import Client

logger = logging.getLogger(__name__)

_SUBSYSTEM_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class AuditEntry:
    """A single recorded configuration change."""

    time: str
    username: str
    ip_address: str
    note: str
    paths: list[str]
    subsystems: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AuditTrail:
    """Append-only JSON lines log of configuration changes."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def record(
        self,
        paths: list[str],
        note: str,
        client: Client,
        subsystems: list[str] | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            time=datetime.now(UTC).isoformat(),
            username=client.username,
            ip_address=client.ip_address,
            note=note,
            paths=list(paths),
            subsystems=list(subsystems or []),
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry.to_dict()) + "\n")
        logger.info("Config change by %s: %s", client, note)
        return entry

    def entries(self) -> list[AuditEntry]:
        """Read back every recorded entry, oldest first."""
        if not self.path.exists():
            return []
        with self.path.open(encoding="utf-8") as fh:
            return [AuditEntry(**json.loads(line)) for line in fh if line.strip()]


class SubsystemTracker:
    """Marks subsystems as needing reconciliation by an external process.

    A dirty subsystem is represented by a "<name>.dirty" marker file so that
    processes other than the writer can observe it.
    """

    def __init__(self, state_dir: Path | str):
        self.state_dir = Path(state_dir)

    def _marker(self, subsystem: str) -> Path:
        if not _SUBSYSTEM_PATTERN.match(subsystem):
            raise ValueError(f"Invalid subsystem name: {subsystem!r}")
        return self.state_dir / f"{subsystem}.dirty"

    def mark_dirty(self, subsystem: str) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self._marker(subsystem).touch()
        logger.debug("Subsystem %s marked dirty", subsystem)

    def is_dirty(self, subsystem: str) -> bool:
        return self._marker(subsystem).exists()

    def clear(self, subsystem: str) -> None:
        self._marker(subsystem).unlink(missing_ok=True)

    def dirty_subsystems(self) -> list[str]:
        if not self.state_dir.exists():
            return []
        return sorted(p.name[: -len(".dirty")] for p in self.state_dir.glob("*.dirty"))
