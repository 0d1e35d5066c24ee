"""Save and load in-flight swarm state and the execution history.

Layout under the storage root (see ``taskswarm.config.get_swarm_storage_dir``)::

    <root>/<swarm-name>/state.json   one per active swarm
    <root>/history.json              shared, append-only list of executions

State is written to a uniquely named temp file next to ``state.json`` and
renamed over it, so readers never observe a partial write. There is no
cross-process lock: two processes driving the same swarm name can race.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from taskswarm.config import DEFAULT_SETTINGS_PATH, CostTrackingConfig, get_swarm_storage_dir
from taskswarm.errors import InvalidStateError, SwarmStateNotFoundError
from taskswarm.swarm.types import (
    ExecutionStatus,
    SwarmExecution,
    SwarmState,
    SwarmStatus,
    TaskCostEntry,
    TaskStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

STATE_FILE = "state.json"
HISTORY_FILE = "history.json"
TASK_LIST_ENV_KEY = "CLAUDE_CODE_TASK_LIST_ID"

_LOAD_ERRORS = (json.JSONDecodeError, InvalidStateError, KeyError, TypeError, ValueError)


# ── Paths ────────────────────────────────────────────────────


def _root(root: str | Path | None) -> Path:
    return get_swarm_storage_dir(root)


def swarm_dir(name: str, root: str | Path | None = None) -> Path:
    """Return the directory for a named swarm (may not exist yet)."""
    return _root(root) / name


def state_path(name: str, root: str | Path | None = None) -> Path:
    """Return the expected state file path for a swarm (may not exist yet)."""
    return swarm_dir(name, root) / STATE_FILE


def history_path(root: str | Path | None = None) -> Path:
    return _root(root) / HISTORY_FILE


def _write_json_atomic(path: Path, data: Any) -> None:
    """Write *data* to a temp file beside *path*, then rename over it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.stem}.{uuid.uuid4()}.tmp")
    try:
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


# ── Initialization ───────────────────────────────────────────


def init_persistence(name: str, root: str | Path | None = None) -> Path:
    """Create the swarm directory, an empty state placeholder and the history log.

    Existing files are left untouched. Returns the swarm directory.
    """
    directory = swarm_dir(name, root)
    directory.mkdir(parents=True, exist_ok=True)

    state_file = directory / STATE_FILE
    if not state_file.exists():
        state_file.write_text("{}", encoding="utf-8")

    history_file = history_path(root)
    if not history_file.exists():
        _write_json_atomic(history_file, [])

    logger.info("Initialized swarm persistence: %s", directory)
    return directory


# ── State management ─────────────────────────────────────────


def save_swarm_state(state: SwarmState, root: str | Path | None = None) -> Path:
    """Persist *state* atomically and return the state file path."""
    path = state_path(state.name, root)
    _write_json_atomic(path, state.to_dict())
    logger.debug("Swarm state saved: %s", path)
    return path


def load_swarm_state(name: str, root: str | Path | None = None) -> SwarmState | None:
    """Load and validate a swarm's state.

    Returns ``None`` when the file is missing, still the empty placeholder,
    or fails to parse or validate.
    """
    path = state_path(name, root)
    if not path.exists():
        return None

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Unreadable swarm state %s: %s", path, e)
        return None

    if raw == {}:
        return None

    try:
        return SwarmState.from_dict(raw)
    except _LOAD_ERRORS as e:
        logger.warning("Invalid swarm state %s treated as absent: %s", path, e)
        return None


def clear_swarm_state(name: str, root: str | Path | None = None) -> None:
    """Delete a swarm's state file if present."""
    path = state_path(name, root)
    if path.exists():
        path.unlink()
        logger.info("Swarm state cleared: %s", path)


def _require_state(name: str, root: str | Path | None) -> SwarmState:
    state = load_swarm_state(name, root)
    if state is None:
        raise SwarmStateNotFoundError(name)
    return state


# ── Task tracking ────────────────────────────────────────────


def mark_tasks_started(
    name: str,
    task_ids: list[str],
    root: str | Path | None = None,
) -> SwarmState:
    """Move *task_ids* to ``in_progress`` and stamp ``started_at`` in one save."""
    state = _require_state(name, root)
    now = utcnow()
    for task_id in task_ids:
        task = state.plan.get_task(task_id)
        if task is None:
            logger.warning("Swarm %s has no task %s; not started", name, task_id)
            continue
        task.status = TaskStatus.IN_PROGRESS
        task.started_at = now
    save_swarm_state(state, root)
    return state


def record_task_completion(
    name: str,
    task_id: str,
    cost: TaskCostEntry,
    root: str | Path | None = None,
    cost_tracking: CostTrackingConfig | None = None,
) -> SwarmState:
    """Record a finished task with its cost.

    Adding the task to ``completed_tasks`` is idempotent; the cost is added
    to the swarm total on every call. With *cost_tracking* disabled the cost
    is dropped, and with ``per_task`` off it only counts towards the total.
    Raises ``SwarmStateNotFoundError`` if the swarm has no state.
    """
    state = _require_state(name, root)
    tracking = cost_tracking or CostTrackingConfig()

    if task_id not in state.completed_tasks:
        state.completed_tasks.append(task_id)

    task = state.plan.get_task(task_id)
    if task is not None:
        if tracking.enabled and tracking.per_task:
            task.cost = cost
        task.status = TaskStatus.COMPLETED
        task.completed_at = utcnow()
    else:
        logger.warning("Swarm %s has no task %s; recording cost only", name, task_id)

    if tracking.enabled:
        state.total_cost += cost.cost
    save_swarm_state(state, root)
    logger.info("Task %s completed in swarm %s (cost $%.4f)", task_id, name, cost.cost)
    return state


def record_task_failure(
    name: str,
    task_id: str,
    cost: TaskCostEntry | None = None,
    root: str | Path | None = None,
    error: str | None = None,
    cost_tracking: CostTrackingConfig | None = None,
) -> SwarmState:
    """Record a failed task. Failed tasks are never retried.

    *error* is kept in the task's metadata under ``"error"``. *cost* follows
    the same *cost_tracking* rules as ``record_task_completion``.
    """
    state = _require_state(name, root)
    tracking = cost_tracking or CostTrackingConfig()
    if not tracking.enabled:
        cost = None

    if task_id not in state.failed_tasks:
        state.failed_tasks.append(task_id)

    task = state.plan.get_task(task_id)
    if task is not None:
        task.status = TaskStatus.FAILED
        task.completed_at = utcnow()
        if cost is not None and tracking.per_task:
            task.cost = cost
        if error:
            task.metadata = {**(task.metadata or {}), "error": error}

    if cost is not None:
        state.total_cost += cost.cost
    save_swarm_state(state, root)
    logger.info("Task %s failed in swarm %s: %s", task_id, name, error or "no error given")
    return state


# ── History ──────────────────────────────────────────────────


def get_swarm_history(root: str | Path | None = None) -> list[SwarmExecution]:
    """Return every valid execution record in the history log."""
    path = history_path(root)
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Unreadable swarm history %s: %s", path, e)
        return []
    if not isinstance(raw, list):
        return []

    executions: list[SwarmExecution] = []
    for entry in raw:
        try:
            executions.append(SwarmExecution.from_dict(entry))
        except _LOAD_ERRORS as e:
            logger.warning("Skipping invalid history entry: %s", e)
    return executions


def _final_status(state: SwarmState) -> ExecutionStatus:
    if state.status == SwarmStatus.STOPPED:
        return ExecutionStatus.STOPPED
    if state.failed_tasks:
        return ExecutionStatus.FAILED
    return ExecutionStatus.COMPLETED


def record_swarm_completion(
    state: SwarmState,
    root: str | Path | None = None,
) -> SwarmExecution:
    """Archive a finished swarm to the history log and delete its state file."""
    completed_at = state.completed_at or utcnow()
    duration_ms = int((completed_at - state.started_at).total_seconds() * 1000)

    execution = SwarmExecution(
        id=state.id,
        name=state.name,
        status=_final_status(state),
        task_count=len(state.plan.tasks),
        completed_count=len(state.completed_tasks),
        total_cost=state.total_cost,
        duration=max(duration_ms, 0),
        started_at=state.started_at,
        completed_at=completed_at,
    )

    history = get_swarm_history(root)
    history.append(execution)
    _write_json_atomic(history_path(root), [e.to_dict() for e in history])

    clear_swarm_state(state.name, root)
    logger.info("Swarm %s archived with status %s", state.name, execution.status)
    return execution


# ── Active swarms ────────────────────────────────────────────


def get_active_swarms(root: str | Path | None = None) -> list[str]:
    """Return names of swarms whose state file loads successfully."""
    base = _root(root)
    if not base.exists():
        return []
    return [
        entry.name
        for entry in sorted(base.iterdir())
        if entry.is_dir()
        and (entry / STATE_FILE).exists()
        and load_swarm_state(entry.name, root) is not None
    ]


# ── Task-list identifier in external settings ────────────────


def _settings_file(settings_path: str | Path | None) -> Path:
    return Path(settings_path or DEFAULT_SETTINGS_PATH).expanduser()


def _read_settings(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Unreadable settings file %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def set_task_list_id(name: str, settings_path: str | Path | None = None) -> Path:
    """Point the external task tracker at swarm *name*."""
    path = _settings_file(settings_path)
    settings = _read_settings(path) or {}
    env = settings.get("env")
    if not isinstance(env, dict):
        env = settings["env"] = {}
    env[TASK_LIST_ENV_KEY] = name
    _write_json_atomic(path, settings)
    logger.info("Set %s=%s in %s", TASK_LIST_ENV_KEY, name, path)
    return path


def clear_task_list_id(settings_path: str | Path | None = None) -> None:
    """Remove the task-list identifier, dropping ``env`` if it ends up empty."""
    path = _settings_file(settings_path)
    settings = _read_settings(path)
    if settings is None:
        return
    env = settings.get("env")
    if isinstance(env, dict):
        env.pop(TASK_LIST_ENV_KEY, None)
        if not env:
            del settings["env"]
    _write_json_atomic(path, settings)
