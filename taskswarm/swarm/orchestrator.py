"""Swarm orchestrator — drives a persisted plan from start to archive.

Two ways to use it:

* push-style: ``start()``, then ``dispatch_ready()`` whenever a slot may have
  freed up, with the external executor reporting back through
  ``complete_task`` / ``fail_task``; ``finish()`` once ``is_finished()``.
* awaitable: ``await run(executor)`` does all of the above tier by tier.

Usage:
    orchestrator = SwarmOrchestrator("auth-feature", plan, max_concurrent_workers=3)
    execution = await orchestrator.run(my_executor)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from taskswarm.config import CostTrackingConfig
from taskswarm.errors import InvalidPlanError, SwarmIncompleteError, SwarmStateNotFoundError
from taskswarm.swarm.graph import get_ready_tasks, validate_dependencies
from taskswarm.swarm.persistence import (
    init_persistence,
    load_swarm_state,
    mark_tasks_started,
    record_swarm_completion,
    record_task_completion,
    record_task_failure,
    save_swarm_state,
)
from taskswarm.swarm.spawner import SpawnConfig, WorkerContext, create_spawn_config
from taskswarm.swarm.types import (
    SwarmExecution,
    SwarmPlan,
    SwarmState,
    SwarmStatus,
    SwarmTask,
    TaskCostEntry,
    TaskStatus,
    utcnow,
)
from taskswarm.swarm.worker import AsyncDispatcher, Dispatcher, WorkerResult

logger = logging.getLogger(__name__)


class SwarmOrchestrator:
    """Owns one named swarm: its plan, its persisted state and its dispatch."""

    def __init__(
        self,
        name: str,
        plan: SwarmPlan,
        dispatcher: Dispatcher | None = None,
        context: WorkerContext | None = None,
        max_concurrent_workers: int = 5,
        root: str | Path | None = None,
        on_event: Callable[[str, dict[str, Any]], Any] | None = None,
        cost_tracking: CostTrackingConfig | None = None,
    ) -> None:
        self.name = name
        self.plan = plan
        self.dispatcher = dispatcher
        self.context = context or WorkerContext()
        self.max_concurrent_workers = max(1, max_concurrent_workers)
        self.root = root
        self._on_event = on_event
        self.cost_tracking = cost_tracking or CostTrackingConfig()
        self._summaries: dict[str, str] = {}

    @classmethod
    def resume(
        cls,
        name: str,
        dispatcher: Dispatcher | None = None,
        context: WorkerContext | None = None,
        max_concurrent_workers: int = 5,
        root: str | Path | None = None,
        cost_tracking: CostTrackingConfig | None = None,
    ) -> SwarmOrchestrator:
        """Attach to a swarm that was started earlier, possibly by another process."""
        state = load_swarm_state(name, root)
        if state is None:
            raise SwarmStateNotFoundError(name)
        return cls(
            name,
            state.plan,
            dispatcher=dispatcher,
            context=context,
            max_concurrent_workers=max_concurrent_workers,
            root=root,
            cost_tracking=cost_tracking,
        )

    def _emit(self, kind: str, **data: Any) -> None:
        if self._on_event is not None:
            self._on_event(kind, data)

    def _state(self) -> SwarmState:
        state = load_swarm_state(self.name, self.root)
        if state is None:
            raise SwarmStateNotFoundError(self.name)
        return state

    # ── Lifecycle ────────────────────────────────────────────

    def start(self) -> SwarmState:
        """Validate the plan and persist a fresh active state for it."""
        result = validate_dependencies(self.plan.tasks)
        if not result.valid:
            raise InvalidPlanError(result.errors)

        init_persistence(self.name, self.root)
        state = SwarmState.new(self.name, self.plan)
        save_swarm_state(state, self.root)
        logger.info(
            "Swarm %s started: %r with %d task(s)",
            self.name,
            self.plan.name,
            len(self.plan.tasks),
        )
        self._emit("swarm_started", name=self.name, task_count=len(self.plan.tasks))
        return state

    def stop(self) -> SwarmExecution:
        """Stop the swarm and archive it. In-flight workers are not recalled."""
        state = self._state()
        state.status = SwarmStatus.STOPPED
        state.completed_at = utcnow()
        execution = record_swarm_completion(state, self.root)
        self._emit("swarm_stopped", name=self.name)
        return execution

    def finish(self) -> SwarmExecution:
        """Archive the swarm with its final status."""
        state = self._state()
        if state.status != SwarmStatus.STOPPED:
            state.status = SwarmStatus.COMPLETED
        state.completed_at = utcnow()
        execution = record_swarm_completion(state, self.root)
        self._emit("swarm_finished", name=self.name, status=str(execution.status))
        return execution

    def is_finished(self) -> bool:
        """True once nothing is running and nothing more can become ready.

        That covers a fully settled plan as well as one whose remaining
        tasks sit behind a failed blocker.
        """
        state = self._state()
        if any(t.status == TaskStatus.IN_PROGRESS for t in state.plan.tasks):
            return False
        return not get_ready_tasks(state.plan.tasks, state.completed_tasks)

    # ── Dispatch ─────────────────────────────────────────────

    def _context_for(self, task: SwarmTask) -> WorkerContext:
        previous = [
            f"### {blocker}\n{self._summaries[blocker]}"
            for blocker in task.blocked_by
            if self._summaries.get(blocker)
        ]
        if not previous:
            return self.context
        return WorkerContext(
            codebase_context=self.context.codebase_context,
            previous_results="\n\n".join(previous),
            constraints=list(self.context.constraints),
        )

    def dispatch_ready(self) -> list[SpawnConfig]:
        """Mark as many ready tasks as free slots allow as started and dispatch them.

        State is saved before any dispatcher is called, so a crash mid-dispatch
        never leaves a running worker the state file doesn't know about.
        """
        configs = self._start_ready()
        if self.dispatcher is not None:
            for config in configs:
                self.dispatcher.dispatch(config)
        return configs

    def _start_ready(self) -> list[SpawnConfig]:
        state = self._state()
        if state.status != SwarmStatus.ACTIVE:
            logger.debug("Swarm %s is %s, nothing to dispatch", self.name, state.status)
            return []

        in_progress = sum(1 for t in state.plan.tasks if t.status == TaskStatus.IN_PROGRESS)
        free = self.max_concurrent_workers - in_progress
        if free <= 0:
            return []

        ready_ids = get_ready_tasks(state.plan.tasks, state.completed_tasks)[:free]
        if not ready_ids:
            return []

        state = mark_tasks_started(self.name, ready_ids, self.root)
        started = [task for task in state.plan.tasks if task.id in ready_ids]

        configs = [create_spawn_config(task, self._context_for(task)) for task in started]
        for config in configs:
            logger.info(
                "Dispatching %s to %s (%s)", config.task_id, config.subagent_type, config.model
            )
            self._emit("task_dispatched", task_id=config.task_id, agent=config.subagent_type)
        return configs

    # ── Completion signals ───────────────────────────────────

    def complete_task(self, task_id: str, cost: TaskCostEntry) -> SwarmState:
        state = record_task_completion(
            self.name, task_id, cost, self.root, cost_tracking=self.cost_tracking
        )
        self._emit("task_completed", task_id=task_id, cost=cost.cost)
        return state

    def fail_task(
        self,
        task_id: str,
        error: str | None = None,
        cost: TaskCostEntry | None = None,
    ) -> SwarmState:
        state = record_task_failure(
            self.name, task_id, cost, self.root, error=error, cost_tracking=self.cost_tracking
        )
        self._emit("task_failed", task_id=task_id, error=error)
        return state

    # ── Awaitable execution ──────────────────────────────────

    def _cost_for(self, config: SpawnConfig, result: WorkerResult) -> TaskCostEntry:
        return TaskCostEntry.from_usage(
            task_id=config.task_id,
            agent_name=config.subagent_type.split(":", 1)[-1],
            model=config.model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )

    def _record(self, config: SpawnConfig, result: WorkerResult | BaseException) -> None:
        if isinstance(result, BaseException):
            logger.error("Worker %s raised exception: %s", config.task_id, result)
            self.fail_task(config.task_id, str(result) or type(result).__name__)
            return

        cost = self._cost_for(config, result)
        if result.succeeded:
            if result.summary:
                self._summaries[config.task_id] = result.summary
            self.complete_task(config.task_id, cost)
        else:
            self.fail_task(config.task_id, result.error, cost)

    async def run(self, executor: AsyncDispatcher) -> SwarmExecution:
        """Run the whole plan through *executor* and return the archived execution.

        Starts the swarm if it has no state yet. Each round dispatches every
        ready task (up to the worker limit) and waits for all of them; an
        executor that raises marks its task failed rather than aborting the
        swarm. Tasks go to *executor* only, never to ``self.dispatcher``.

        Raises ``SwarmIncompleteError`` without archiving when tasks started
        elsewhere are still in progress once nothing more can be dispatched;
        resume the swarm after they report back.
        """
        if load_swarm_state(self.name, self.root) is None:
            self.start()

        while True:
            configs = self._start_ready()
            if not configs:
                break
            results = await asyncio.gather(
                *(executor.run(config) for config in configs),
                return_exceptions=True,
            )
            for config, result in zip(configs, results):
                self._record(config, result)

        if not self.is_finished():
            running = [t.id for t in self._state().plan.tasks if t.status == TaskStatus.IN_PROGRESS]
            logger.warning("Swarm %s has tasks still in progress elsewhere: %s", self.name, running)
            raise SwarmIncompleteError(self.name, running)
        return self.finish()
