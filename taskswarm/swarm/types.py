"""Shared types for the swarm module.

All persisted types round-trip through ``to_dict`` / ``from_dict``. The dict
form uses the camelCase field names of the on-disk JSON format, and
``from_dict`` validates its input, raising ``InvalidStateError`` on anything
that does not match the schema.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, TypeVar

from taskswarm.errors import InvalidStateError

E = TypeVar("E", bound=StrEnum)


class TaskStatus(StrEnum):
    """Execution status of a single task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ModelTier(StrEnum):
    """Model capability/cost tier, cheapest first."""

    HAIKU = "haiku"
    SONNET = "sonnet"
    OPUS = "opus"

    @property
    def rank(self) -> int:
        return list(ModelTier).index(self)


class ParallelismMode(StrEnum):
    """Execution strategy hint for a plan."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    HYBRID = "hybrid"


class SwarmStatus(StrEnum):
    """Status of an in-flight swarm."""

    ACTIVE = "active"
    COMPLETED = "completed"
    STOPPED = "stopped"


class ExecutionStatus(StrEnum):
    """Final status of an archived swarm execution."""

    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(UTC)


# ── Validation helpers ───────────────────────────────────────


def _require(data: Any, key: str) -> Any:
    if not isinstance(data, dict):
        raise InvalidStateError(f"expected an object, got {type(data).__name__}")
    if key not in data:
        raise InvalidStateError(f"missing field '{key}'")
    return data[key]


def _str(data: dict[str, Any], key: str, *, non_empty: bool = False) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise InvalidStateError(f"field '{key}' must be a string")
    if non_empty and not value:
        raise InvalidStateError(f"field '{key}' must not be empty")
    return value


def _str_list(data: dict[str, Any], key: str) -> list[str]:
    value = _require(data, key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidStateError(f"field '{key}' must be a list of strings")
    return list(value)


def _number(data: dict[str, Any], key: str, *, integer: bool = False) -> float:
    value = _require(data, key)
    # bool is an int subclass but never a valid count or cost
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidStateError(f"field '{key}' must be a number")
    if integer and not float(value).is_integer():
        raise InvalidStateError(f"field '{key}' must be an integer")
    if value < 0:
        raise InvalidStateError(f"field '{key}' must not be negative")
    return value


def _enum(enum_cls: type[E], data: dict[str, Any], key: str) -> E:
    value = _require(data, key)
    try:
        return enum_cls(value)
    except ValueError as e:
        raise InvalidStateError(f"field '{key}' has invalid value {value!r}") from e


def _datetime(value: Any, key: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as e:
            raise InvalidStateError(f"field '{key}' is not an ISO timestamp") from e
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # epoch milliseconds
        parsed = datetime.fromtimestamp(value / 1000, tz=UTC)
    else:
        raise InvalidStateError(f"field '{key}' must be a timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_datetime(data: dict[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    return None if value is None else _datetime(value, key)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ── Cost accounting ──────────────────────────────────────────


@dataclass(frozen=True)
class ModelPricing:
    """Per-million-token prices in USD."""

    input_per_1m: float
    output_per_1m: float


DEFAULT_PRICING: dict[ModelTier, ModelPricing] = {
    ModelTier.HAIKU: ModelPricing(input_per_1m=0.25, output_per_1m=1.25),
    ModelTier.SONNET: ModelPricing(input_per_1m=3.0, output_per_1m=15.0),
    ModelTier.OPUS: ModelPricing(input_per_1m=15.0, output_per_1m=75.0),
}


@dataclass
class TaskCostEntry:
    """Token and cost accounting for one executed task."""

    task_id: str
    agent_name: str
    model: ModelTier
    input_tokens: int
    output_tokens: int
    cost: float

    @classmethod
    def from_usage(
        cls,
        task_id: str,
        agent_name: str,
        model: ModelTier,
        input_tokens: int,
        output_tokens: int,
        pricing: dict[ModelTier, ModelPricing] | None = None,
    ) -> TaskCostEntry:
        """Build an entry, computing the cost from token counts."""
        prices = (pricing or DEFAULT_PRICING)[ModelTier(model)]
        cost = (
            input_tokens * prices.input_per_1m + output_tokens * prices.output_per_1m
        ) / 1_000_000
        return cls(
            task_id=task_id,
            agent_name=agent_name,
            model=ModelTier(model),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost=round(cost, 6),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "agentName": self.agent_name,
            "model": str(self.model),
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cost": self.cost,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskCostEntry:
        return cls(
            task_id=_str(data, "taskId"),
            agent_name=_str(data, "agentName"),
            model=_enum(ModelTier, data, "model"),
            input_tokens=int(_number(data, "inputTokens", integer=True)),
            output_tokens=int(_number(data, "outputTokens", integer=True)),
            cost=float(_number(data, "cost")),
        )


# ── Tasks and plans ──────────────────────────────────────────


@dataclass
class SwarmTask:
    """A schedulable unit of work with dependency edges."""

    id: str
    subject: str
    description: str
    agent: str
    model: ModelTier
    status: TaskStatus = TaskStatus.PENDING
    blocked_by: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)
    owner: str | None = None
    cost: TaskCostEntry | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "subject": self.subject,
            "description": self.description,
            "status": str(self.status),
            "agent": self.agent,
            "model": str(self.model),
            "blockedBy": list(self.blocked_by),
            "blocks": list(self.blocks),
            "createdAt": _iso(self.created_at),
        }
        if self.owner is not None:
            data["owner"] = self.owner
        if self.cost is not None:
            data["cost"] = self.cost.to_dict()
        if self.metadata is not None:
            data["metadata"] = dict(self.metadata)
        if self.started_at is not None:
            data["startedAt"] = _iso(self.started_at)
        if self.completed_at is not None:
            data["completedAt"] = _iso(self.completed_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmTask:
        task_id = _str(data, "id", non_empty=True)
        owner = data.get("owner")
        if owner is not None and not isinstance(owner, str):
            raise InvalidStateError("field 'owner' must be a string")
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidStateError("field 'metadata' must be an object")
        cost = data.get("cost")
        return cls(
            id=task_id,
            subject=_str(data, "subject", non_empty=True),
            description=_str(data, "description"),
            status=_enum(TaskStatus, data, "status"),
            agent=_str(data, "agent", non_empty=True),
            model=_enum(ModelTier, data, "model"),
            blocked_by=_str_list(data, "blockedBy"),
            blocks=_str_list(data, "blocks"),
            owner=owner,
            cost=TaskCostEntry.from_dict(cost) if cost is not None else None,
            metadata=metadata,
            created_at=_datetime(_require(data, "createdAt"), "createdAt"),
            started_at=_optional_datetime(data, "startedAt"),
            completed_at=_optional_datetime(data, "completedAt"),
        )


@dataclass
class SwarmPlan:
    """A named, ordered collection of tasks with a parallelism mode.

    The task list and its edges are fixed once the plan is created; only
    per-task status, cost and timestamps change during execution.
    """

    id: str
    name: str
    tasks: list[SwarmTask]
    parallelism: ParallelismMode
    created_at: datetime = field(default_factory=utcnow)

    def get_task(self, task_id: str) -> SwarmTask | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tasks": [t.to_dict() for t in self.tasks],
            "parallelism": str(self.parallelism),
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmPlan:
        raw_tasks = _require(data, "tasks")
        if not isinstance(raw_tasks, list):
            raise InvalidStateError("field 'tasks' must be a list")
        return cls(
            id=_str(data, "id", non_empty=True),
            name=_str(data, "name", non_empty=True),
            tasks=[SwarmTask.from_dict(t) for t in raw_tasks],
            parallelism=_enum(ParallelismMode, data, "parallelism"),
            created_at=_datetime(_require(data, "createdAt"), "createdAt"),
        )


@dataclass
class DependencyNode:
    """A node of the derived dependency graph (never persisted)."""

    task_id: str
    depth: int = 0
    blocked_by: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)


# ── Execution state ──────────────────────────────────────────


@dataclass
class SwarmState:
    """Mutable execution record for one in-flight plan."""

    id: str
    name: str
    status: SwarmStatus
    plan: SwarmPlan
    completed_tasks: list[str] = field(default_factory=list)
    failed_tasks: list[str] = field(default_factory=list)
    total_cost: float = 0.0
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @classmethod
    def new(cls, name: str, plan: SwarmPlan) -> SwarmState:
        """Create an active state for *plan* under *name*."""
        return cls(id=str(uuid.uuid4()), name=name, status=SwarmStatus.ACTIVE, plan=plan)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "status": str(self.status),
            "plan": self.plan.to_dict(),
            "completedTasks": list(self.completed_tasks),
            "failedTasks": list(self.failed_tasks),
            "totalCost": self.total_cost,
            "startedAt": _iso(self.started_at),
        }
        if self.completed_at is not None:
            data["completedAt"] = _iso(self.completed_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmState:
        return cls(
            id=_str(data, "id", non_empty=True),
            name=_str(data, "name", non_empty=True),
            status=_enum(SwarmStatus, data, "status"),
            plan=SwarmPlan.from_dict(_require(data, "plan")),
            completed_tasks=_str_list(data, "completedTasks"),
            failed_tasks=_str_list(data, "failedTasks"),
            total_cost=float(_number(data, "totalCost")),
            started_at=_datetime(_require(data, "startedAt"), "startedAt"),
            completed_at=_optional_datetime(data, "completedAt"),
        )


@dataclass
class SwarmExecution:
    """Append-only history summary of a finished swarm."""

    id: str
    name: str
    status: ExecutionStatus
    task_count: int
    completed_count: int
    total_cost: float
    duration: int  # milliseconds
    started_at: datetime
    completed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": str(self.status),
            "taskCount": self.task_count,
            "completedCount": self.completed_count,
            "totalCost": self.total_cost,
            "duration": self.duration,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmExecution:
        return cls(
            id=_str(data, "id", non_empty=True),
            name=_str(data, "name", non_empty=True),
            status=_enum(ExecutionStatus, data, "status"),
            task_count=int(_number(data, "taskCount", integer=True)),
            completed_count=int(_number(data, "completedCount", integer=True)),
            total_cost=float(_number(data, "totalCost")),
            duration=int(_number(data, "duration", integer=True)),
            started_at=_datetime(_require(data, "startedAt"), "startedAt"),
            completed_at=_datetime(_require(data, "completedAt"), "completedAt"),
        )


@dataclass
class SwarmRecommendation:
    """Decomposition advice for a classified request."""

    decompose: bool
    suggested_subtasks: int
    parallelism: ParallelismMode
