"""Swarm configuration dataclasses and config-file loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_FILE = ".taskswarm.yml"
HOME_ENV_VAR = "TASKSWARM_HOME"
DEFAULT_HOME = "~/.taskswarm"
SWARMS_DIR = "swarms"
DEFAULT_SETTINGS_PATH = "~/.claude/settings.json"

MIN_WORKERS = 1
MAX_WORKERS = 10


@dataclass
class PersistenceConfig:
    """Where swarm state is kept on disk."""

    directory: str | None = None


@dataclass
class CostTrackingConfig:
    """Whether worker costs are summed per swarm and kept on each task."""

    enabled: bool = True
    per_task: bool = True


@dataclass
class SwarmConfig:
    """Configuration for swarm planning and execution.

    Can be loaded from the ``swarm`` section of ``.taskswarm.yml``.
    """

    enabled: bool = True
    default_parallelism: str = "parallel"
    max_concurrent_workers: int = 5
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    cost_tracking: CostTrackingConfig = field(default_factory=CostTrackingConfig)
    settings_path: str = DEFAULT_SETTINGS_PATH

    def __post_init__(self) -> None:
        from taskswarm.swarm.types import ParallelismMode

        self.default_parallelism = ParallelismMode(self.default_parallelism)
        clamped = max(MIN_WORKERS, min(MAX_WORKERS, int(self.max_concurrent_workers)))
        if clamped != self.max_concurrent_workers:
            logger.warning(
                "max_concurrent_workers=%s out of range, using %d",
                self.max_concurrent_workers,
                clamped,
            )
        self.max_concurrent_workers = clamped

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmConfig:
        persistence = data.get("persistence") or {}
        cost_tracking = data.get("cost_tracking") or {}
        return cls(
            enabled=bool(data.get("enabled", True)),
            default_parallelism=data.get("default_parallelism", "parallel"),
            max_concurrent_workers=int(data.get("max_concurrent_workers", 5)),
            persistence=PersistenceConfig(directory=persistence.get("directory")),
            cost_tracking=CostTrackingConfig(
                enabled=bool(cost_tracking.get("enabled", True)),
                per_task=bool(cost_tracking.get("per_task", True)),
            ),
            settings_path=str(data.get("settings_path", DEFAULT_SETTINGS_PATH)),
        )

    def storage_dir(self) -> Path:
        """Resolve the swarm storage root for this configuration."""
        return get_swarm_storage_dir(self.persistence.directory)


def get_swarm_storage_dir(directory: str | Path | None = None) -> Path:
    """Return the directory holding per-swarm state and the history log.

    Precedence: explicit *directory* > ``$TASKSWARM_HOME/swarms`` >
    ``~/.taskswarm/swarms``.
    """
    if directory:
        return Path(directory).expanduser()
    home = os.environ.get(HOME_ENV_VAR) or DEFAULT_HOME
    return Path(home).expanduser() / SWARMS_DIR


def load_config(cwd: str) -> SwarmConfig | None:
    """Load config from .taskswarm.yml if it exists, else return None."""
    import yaml

    config_path = Path(cwd) / CONFIG_FILE
    if not config_path.exists():
        return None
    with config_path.open() as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        return None
    section = data.get("swarm", data)
    return SwarmConfig.from_dict(section if isinstance(section, dict) else {})
