"""Shared factories for swarm tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from taskswarm.swarm.classification import (
    AgentRecommendation,
    IntentClassification,
    UserSignals,
)
from taskswarm.swarm.graph import link_tasks
from taskswarm.swarm.types import ModelTier, ParallelismMode, SwarmPlan, SwarmTask


def make_task(task_id: str, blocked_by: list[str] | None = None, **kwargs: Any) -> SwarmTask:
    return SwarmTask(
        id=task_id,
        subject=kwargs.pop("subject", f"Task {task_id}"),
        description=kwargs.pop("description", f"Do {task_id}"),
        agent=kwargs.pop("agent", "executor"),
        model=kwargs.pop("model", ModelTier.SONNET),
        blocked_by=list(blocked_by or []),
        **kwargs,
    )


def make_plan(*tasks: SwarmTask, name: str = "Test plan") -> SwarmPlan:
    return SwarmPlan(
        id="plan-1",
        name=name,
        tasks=link_tasks(list(tasks)),
        parallelism=ParallelismMode.HYBRID,
    )


def make_classification(
    type: str = "implementation",
    complexity: str = "moderate",
    domains: list[str] | None = None,
    agents: list[str] | None = None,
    **signals: bool,
) -> IntentClassification:
    return IntentClassification(
        type=type,
        complexity=complexity,
        domains=list(domains if domains is not None else ["backend"]),
        signals=UserSignals(**signals),
        recommendation=AgentRecommendation(agents=list(agents or ["executor"])),
    )


@pytest.fixture
def swarm_root(tmp_path: Path) -> Path:
    return tmp_path / "swarms"


@pytest.fixture
def diamond_plan() -> SwarmPlan:
    """a, b → c → d"""
    return make_plan(
        make_task("a"),
        make_task("b"),
        make_task("c", ["a", "b"]),
        make_task("d", ["c"]),
    )
