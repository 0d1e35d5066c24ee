"""Interfaces that external task executors implement.

The swarm engine never runs a model itself. It hands a ``SpawnConfig`` to a
dispatcher supplied by the surrounding application and later learns the
outcome through a completion signal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

from taskswarm.swarm.spawner import SpawnConfig

logger = logging.getLogger(__name__)

WorkerStatus = Literal["completed", "failed"]


@dataclass
class WorkerResult:
    """Outcome reported by an executor for one task."""

    task_id: str
    status: WorkerStatus
    summary: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"


@runtime_checkable
class Dispatcher(Protocol):
    """Fire-and-forget hand-off of a task to an external executor.

    The executor reports back later through
    ``SwarmOrchestrator.complete_task`` / ``fail_task``.
    """

    def dispatch(self, config: SpawnConfig) -> None: ...


@runtime_checkable
class AsyncDispatcher(Protocol):
    """An executor that can be awaited until the task finishes."""

    async def run(self, config: SpawnConfig) -> WorkerResult: ...


class CollectingDispatcher:
    """Dispatcher that only queues configs for the caller to pick up.

    Useful when the actual spawning happens elsewhere, e.g. the CLI printing
    spawn configs for another tool to consume.
    """

    def __init__(self) -> None:
        self.dispatched: list[SpawnConfig] = []

    def dispatch(self, config: SpawnConfig) -> None:
        logger.debug("Queued %s for %s", config.task_id, config.subagent_type)
        self.dispatched.append(config)

    def drain(self) -> list[SpawnConfig]:
        configs, self.dispatched = self.dispatched, []
        return configs
