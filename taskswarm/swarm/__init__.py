"""Task decomposition, dependency scheduling and swarm state for taskswarm."""

from __future__ import annotations

from taskswarm.swarm.orchestrator import SwarmOrchestrator
from taskswarm.swarm.planner import create_swarm_plan, get_swarm_recommendation
from taskswarm.swarm.types import SwarmPlan, SwarmState, SwarmTask, TaskCostEntry
from taskswarm.swarm.worker import AsyncDispatcher, Dispatcher, WorkerResult

__all__ = [
    "SwarmOrchestrator",
    "create_swarm_plan",
    "get_swarm_recommendation",
    "SwarmPlan",
    "SwarmState",
    "SwarmTask",
    "TaskCostEntry",
    "AsyncDispatcher",
    "Dispatcher",
    "WorkerResult",
]
