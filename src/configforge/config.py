"""Store configuration resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class StoreConfig:
    """ConfigStore settings.

    Attributes:
        path: YAML file holding the persisted configuration tree
        lock_path: Lock file guarding writes (defaults to "<path>.lock")
        state_dir: Directory for subsystem dirty markers and the audit trail
        lock_attempts: Lock acquisition attempts before giving up
        lock_interval: Seconds to wait on each attempt
        packages: Installed package names satisfying Model prerequisites
        log_level: Logging level name for CLI entry points
    """

    path: Path
    lock_path: Path | None = None
    state_dir: Path | None = None
    lock_attempts: int = 60
    lock_interval: float = 1.0
    packages: list[str] = field(default_factory=list)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> StoreConfig:
        """Create config from environment variables.

        Resolution order for the store file:
        1. CONFIGFORGE_STORE_PATH env var
        2. {base_path}/data/config.yaml when base_path is given
        3. Default: ./config.yaml
        """
        store_path = os.environ.get("CONFIGFORGE_STORE_PATH")
        if store_path:
            path = Path(store_path)
        elif base_path:
            path = base_path / "data" / "config.yaml"
        else:
            path = Path("config.yaml")

        lock_path = os.environ.get("CONFIGFORGE_LOCK_PATH")
        state_dir = os.environ.get("CONFIGFORGE_STATE_DIR")
        packages = os.environ.get("CONFIGFORGE_PACKAGES", "")

        return cls(
            path=path,
            lock_path=Path(lock_path) if lock_path else None,
            state_dir=Path(state_dir) if state_dir else None,
            lock_attempts=int(os.environ.get("CONFIGFORGE_LOCK_ATTEMPTS", "60")),
            lock_interval=float(os.environ.get("CONFIGFORGE_LOCK_INTERVAL", "1.0")),
            packages=[p.strip() for p in packages.split(",") if p.strip()],
            log_level=os.environ.get("CONFIGFORGE_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def resolved_lock_path(self) -> Path:
        return self.lock_path or self.path.with_name(self.path.name + ".lock")

    @property
    def resolved_state_dir(self) -> Path:
        return self.state_dir or self.path.parent
