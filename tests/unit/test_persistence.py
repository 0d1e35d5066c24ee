"""Tests for swarm state persistence and the history log."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import make_plan, make_task

from taskswarm.config import CostTrackingConfig
from taskswarm.errors import SwarmStateNotFoundError
from taskswarm.swarm.persistence import (
    clear_swarm_state,
    clear_task_list_id,
    get_active_swarms,
    get_swarm_history,
    history_path,
    init_persistence,
    load_swarm_state,
    record_swarm_completion,
    record_task_completion,
    record_task_failure,
    save_swarm_state,
    set_task_list_id,
    state_path,
)
from taskswarm.swarm.types import (
    ExecutionStatus,
    ModelTier,
    SwarmPlan,
    SwarmState,
    SwarmStatus,
    TaskCostEntry,
    TaskStatus,
)


def _cost(task_id: str, tokens: int = 1000) -> TaskCostEntry:
    return TaskCostEntry.from_usage(task_id, "executor", ModelTier.SONNET, tokens, tokens)


def _started(name: str, plan: SwarmPlan, root: Path) -> SwarmState:
    init_persistence(name, root)
    state = SwarmState.new(name, plan)
    save_swarm_state(state, root)
    return state


# ── Initialization ───────────────────────────────────────────


class TestInitPersistence:
    def test_creates_layout(self, swarm_root: Path) -> None:
        directory = init_persistence("demo", swarm_root)
        assert directory == swarm_root / "demo"
        assert json.loads(state_path("demo", swarm_root).read_text()) == {}
        assert json.loads(history_path(swarm_root).read_text()) == []

    def test_leaves_existing_files(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        init_persistence("demo", swarm_root)
        assert load_swarm_state("demo", swarm_root) is not None

    def test_placeholder_is_not_a_state(self, swarm_root: Path) -> None:
        init_persistence("demo", swarm_root)
        assert load_swarm_state("demo", swarm_root) is None


# ── Save / load ──────────────────────────────────────────────


class TestSaveLoad:
    def test_round_trip(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        state = _started("demo", diamond_plan, swarm_root)
        loaded = load_swarm_state("demo", swarm_root)
        assert loaded is not None
        assert loaded.id == state.id
        assert [t.id for t in loaded.plan.tasks] == ["a", "b", "c", "d"]
        assert loaded.plan.get_task("c").blocked_by == ["a", "b"]

    def test_no_temp_files_left(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        leftovers = [p.name for p in (swarm_root / "demo").iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_missing_is_none(self, swarm_root: Path) -> None:
        assert load_swarm_state("nope", swarm_root) is None

    def test_corrupt_json_is_none(self, swarm_root: Path) -> None:
        init_persistence("demo", swarm_root)
        state_path("demo", swarm_root).write_text("{not json")
        assert load_swarm_state("demo", swarm_root) is None

    def test_schema_violation_is_none(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        path = state_path("demo", swarm_root)
        data = json.loads(path.read_text())
        data["status"] = "exploded"
        path.write_text(json.dumps(data))
        assert load_swarm_state("demo", swarm_root) is None

    def test_clear(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        clear_swarm_state("demo", swarm_root)
        assert not state_path("demo", swarm_root).exists()
        clear_swarm_state("demo", swarm_root)


# ── Task tracking ────────────────────────────────────────────


class TestTaskCompletion:
    def test_records_cost_and_status(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        state = record_task_completion("demo", "a", _cost("a"), swarm_root)

        assert state.completed_tasks == ["a"]
        task = state.plan.get_task("a")
        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None
        assert state.total_cost == pytest.approx(_cost("a").cost)
        assert load_swarm_state("demo", swarm_root).completed_tasks == ["a"]

    def test_completion_is_idempotent(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        record_task_completion("demo", "a", _cost("a"), swarm_root)
        state = record_task_completion("demo", "a", _cost("a"), swarm_root)
        assert state.completed_tasks == ["a"]

    def test_missing_state_raises(self, swarm_root: Path) -> None:
        with pytest.raises(SwarmStateNotFoundError, match="Swarm state not found for: ghost"):
            record_task_completion("ghost", "a", _cost("a"), swarm_root)

    def test_unknown_task_still_counts_cost(
        self, swarm_root: Path, diamond_plan: SwarmPlan
    ) -> None:
        _started("demo", diamond_plan, swarm_root)
        state = record_task_completion("demo", "zzz", _cost("zzz"), swarm_root)
        assert "zzz" in state.completed_tasks
        assert state.total_cost > 0

    def test_failure_keeps_error(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        record_task_failure("demo", "b", root=swarm_root, error="boom")
        state = record_task_failure("demo", "b", root=swarm_root, error="boom")

        assert state.failed_tasks == ["b"]
        task = state.plan.get_task("b")
        assert task.status == TaskStatus.FAILED
        assert task.metadata == {"error": "boom"}
        assert state.total_cost == 0.0

    def test_cost_tracking_disabled_drops_cost(
        self, swarm_root: Path, diamond_plan: SwarmPlan
    ) -> None:
        _started("demo", diamond_plan, swarm_root)
        tracking = CostTrackingConfig(enabled=False)

        state = record_task_completion("demo", "a", _cost("a"), swarm_root, tracking)
        assert state.total_cost == 0.0
        assert state.plan.get_task("a").cost is None

        state = record_task_failure("demo", "b", _cost("b"), swarm_root, cost_tracking=tracking)
        assert state.total_cost == 0.0
        assert state.plan.get_task("b").cost is None

    def test_without_per_task_only_total_counts(
        self, swarm_root: Path, diamond_plan: SwarmPlan
    ) -> None:
        _started("demo", diamond_plan, swarm_root)
        tracking = CostTrackingConfig(per_task=False)

        state = record_task_completion("demo", "a", _cost("a"), swarm_root, tracking)
        state = record_task_failure("demo", "b", _cost("b"), swarm_root, cost_tracking=tracking)

        assert state.total_cost == pytest.approx(_cost("a").cost + _cost("b").cost)
        assert state.plan.get_task("a").cost is None
        assert state.plan.get_task("b").cost is None


# ── History ──────────────────────────────────────────────────


class TestSwarmCompletion:
    def test_completed_swarm_archived(self, swarm_root: Path) -> None:
        plan = make_plan(make_task("a"))
        _started("demo", plan, swarm_root)
        state = record_task_completion("demo", "a", _cost("a"), swarm_root)
        state.status = SwarmStatus.COMPLETED

        execution = record_swarm_completion(state, swarm_root)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.task_count == 1
        assert execution.completed_count == 1
        assert execution.duration >= 0
        assert not state_path("demo", swarm_root).exists()
        assert [e.id for e in get_swarm_history(swarm_root)] == [state.id]

    def test_failed_task_marks_execution_failed(
        self, swarm_root: Path, diamond_plan: SwarmPlan
    ) -> None:
        _started("demo", diamond_plan, swarm_root)
        record_task_completion("demo", "a", _cost("a"), swarm_root)
        state = record_task_failure("demo", "b", root=swarm_root)

        execution = record_swarm_completion(state, swarm_root)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.completed_count == 1
        assert not state_path("demo", swarm_root).exists()

    def test_stopped_wins_over_failed(self, swarm_root: Path, diamond_plan: SwarmPlan) -> None:
        _started("demo", diamond_plan, swarm_root)
        state = record_task_failure("demo", "a", root=swarm_root)
        state.status = SwarmStatus.STOPPED
        assert record_swarm_completion(state, swarm_root).status == ExecutionStatus.STOPPED

    def test_history_appends(self, swarm_root: Path) -> None:
        for name in ("one", "two"):
            state = _started(name, make_plan(make_task("a")), swarm_root)
            record_swarm_completion(state, swarm_root)
        assert [e.name for e in get_swarm_history(swarm_root)] == ["one", "two"]

    def test_history_skips_invalid_entries(self, swarm_root: Path) -> None:
        state = _started("demo", make_plan(make_task("a")), swarm_root)
        record_swarm_completion(state, swarm_root)
        path = history_path(swarm_root)
        entries = json.loads(path.read_text())
        entries.append({"id": "broken"})
        path.write_text(json.dumps(entries))

        assert [e.name for e in get_swarm_history(swarm_root)] == ["demo"]

    def test_history_missing_or_corrupt(self, swarm_root: Path) -> None:
        assert get_swarm_history(swarm_root) == []
        swarm_root.mkdir(parents=True)
        history_path(swarm_root).write_text("nope")
        assert get_swarm_history(swarm_root) == []


# ── Active swarms ────────────────────────────────────────────


def test_active_swarms(swarm_root: Path, diamond_plan: SwarmPlan):
    assert get_active_swarms(swarm_root) == []

    _started("beta", diamond_plan, swarm_root)
    _started("alpha", make_plan(make_task("x")), swarm_root)
    init_persistence("placeholder-only", swarm_root)
    (swarm_root / "corrupt").mkdir()
    (swarm_root / "corrupt" / "state.json").write_text("[]")

    assert get_active_swarms(swarm_root) == ["alpha", "beta"]


# ── Task-list identifier ─────────────────────────────────────


class TestTaskListId:
    def test_set_creates_file(self, tmp_path: Path) -> None:
        settings = tmp_path / "claude" / "settings.json"
        set_task_list_id("demo", settings)
        assert json.loads(settings.read_text()) == {"env": {"CLAUDE_CODE_TASK_LIST_ID": "demo"}}

    def test_set_preserves_other_keys(self, tmp_path: Path) -> None:
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"theme": "dark", "env": {"OTHER": "1"}}))
        set_task_list_id("demo", settings)

        data = json.loads(settings.read_text())
        assert data["theme"] == "dark"
        assert data["env"] == {"OTHER": "1", "CLAUDE_CODE_TASK_LIST_ID": "demo"}

    def test_clear_drops_empty_env(self, tmp_path: Path) -> None:
        settings = tmp_path / "settings.json"
        set_task_list_id("demo", settings)
        clear_task_list_id(settings)
        assert json.loads(settings.read_text()) == {}

    def test_clear_keeps_other_env(self, tmp_path: Path) -> None:
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"env": {"OTHER": "1", "CLAUDE_CODE_TASK_LIST_ID": "x"}}))
        clear_task_list_id(settings)
        assert json.loads(settings.read_text()) == {"env": {"OTHER": "1"}}

    def test_clear_without_file(self, tmp_path: Path) -> None:
        clear_task_list_id(tmp_path / "missing.json")
        assert not (tmp_path / "missing.json").exists()
