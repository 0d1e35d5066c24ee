"""Spawn configuration for workers: model routing and prompt generation."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from taskswarm.swarm.classification import Complexity, Domain
from taskswarm.swarm.roles import lightweight_roles
from taskswarm.swarm.types import ModelTier, SwarmTask

logger = logging.getLogger(__name__)

AGENT_NAMESPACE = "taskswarm"
DEFAULT_AGENT = "executor"

_HAIKU_ELIGIBLE_AGENTS = lightweight_roles()

_DOMAIN_AGENTS: dict[str, str] = {
    Domain.FRONTEND: "designer",
    Domain.BACKEND: "executor",
    Domain.DATABASE: "executor",
    Domain.SECURITY: "security",
    Domain.TESTING: "qa-tester",
    Domain.DOCUMENTATION: "writer",
    Domain.GENERAL: "executor",
    Domain.DEVOPS: "executor",
}

# Checked in this order when a request spans several domains
_DOMAIN_PRIORITY: list[str] = [
    Domain.SECURITY,
    Domain.TESTING,
    Domain.FRONTEND,
    Domain.DOCUMENTATION,
    Domain.BACKEND,
    Domain.DATABASE,
    Domain.DEVOPS,
    Domain.GENERAL,
]


@dataclass
class WorkerContext:
    """Extra material handed to a worker alongside its task."""

    codebase_context: str | None = None
    previous_results: str | None = None
    constraints: list[str] = field(default_factory=list)


@dataclass
class SpawnConfig:
    """Everything an external executor needs to start one worker."""

    subagent_type: str
    model: ModelTier
    prompt: str
    run_in_background: bool
    task_id: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["model"] = str(self.model)
        return data


def select_model(complexity: str, agent: str) -> ModelTier:
    """Pick a model tier for *agent* working at *complexity*.

    trivial → haiku; simple → haiku for lightweight agents, sonnet otherwise;
    moderate → sonnet; complex/architectural → opus; anything else → sonnet.
    """
    if complexity == Complexity.TRIVIAL:
        return ModelTier.HAIKU
    if complexity == Complexity.SIMPLE:
        return ModelTier.HAIKU if agent in _HAIKU_ELIGIBLE_AGENTS else ModelTier.SONNET
    if complexity == Complexity.MODERATE:
        return ModelTier.SONNET
    if complexity in (Complexity.COMPLEX, Complexity.ARCHITECTURAL):
        return ModelTier.OPUS
    logger.debug("Unknown complexity %r, defaulting to sonnet", complexity)
    return ModelTier.SONNET


def get_agent_for_domain(domains: list[str]) -> str:
    """Return the agent for the highest-priority domain in *domains*."""
    if not domains:
        return DEFAULT_AGENT
    for domain in _DOMAIN_PRIORITY:
        if domain in domains:
            return _DOMAIN_AGENTS[domain]
    return DEFAULT_AGENT


def generate_worker_prompt(task: SwarmTask, context: WorkerContext | None = None) -> str:
    """Build the prompt a worker receives for *task*.

    Optional sections (previous results, constraints) are left out entirely
    when there is nothing to put in them.
    """
    ctx = context or WorkerContext()
    parts: list[str] = [
        f"You are a {task.agent} worker agent.",
        "",
        f"## Task: {task.subject}",
        task.description,
        "",
        "## Context",
        ctx.codebase_context or "No additional context provided.",
        "",
    ]

    if ctx.previous_results:
        parts += ["## Previous Task Results", ctx.previous_results, ""]

    parts += [
        "## Instructions",
        "1. Focus ONLY on this specific task",
        "2. Use appropriate tools for your specialization",
        "3. Follow existing code patterns",
        "4. When complete, summarize what you accomplished",
        "",
    ]

    if ctx.constraints:
        parts.append("## Constraints")
        parts += [f"- {constraint}" for constraint in ctx.constraints]
        parts.append("")

    parts += [
        "## On Completion",
        "Provide:",
        "- Summary of accomplishments",
        "- Files changed",
        "- Any issues encountered",
    ]
    return "\n".join(parts)


def create_spawn_config(task: SwarmTask, context: WorkerContext | None = None) -> SpawnConfig:
    """Create the spawn configuration for one task."""
    return SpawnConfig(
        subagent_type=f"{AGENT_NAMESPACE}:{task.agent}",
        model=task.model,
        prompt=generate_worker_prompt(task, context),
        run_in_background=True,
        task_id=task.id,
    )


def build_batch_spawn_configs(
    tasks: list[SwarmTask],
    context: WorkerContext | None = None,
) -> list[SpawnConfig]:
    """Create spawn configurations for a batch of tasks dispatched together."""
    return [create_spawn_config(task, context) for task in tasks]
