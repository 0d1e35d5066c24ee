"""Tests for the taskswarm CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import make_task
from typer.testing import CliRunner

from taskswarm.cli.app import app
from taskswarm.cli.render import STATUS_STYLES, render_tree, render_tree_text, tree_rows
from taskswarm.swarm.graph import link_tasks
from taskswarm.swarm.persistence import get_active_swarms, get_swarm_history
from taskswarm.swarm.types import TaskStatus

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project dir whose config keeps storage and settings inside tmp_path."""
    (tmp_path / ".taskswarm.yml").write_text(
        "swarm:\n"
        f"  settings_path: {tmp_path / 'settings.json'}\n"
        "  persistence:\n"
        f"    directory: {tmp_path / 'swarms'}\n"
    )
    (tmp_path / "request.json").write_text(
        json.dumps(
            {
                "type": "implementation",
                "complexity": "moderate",
                "domains": ["backend"],
                "signals": {},
                "recommendation": {"agents": ["executor"]},
            }
        )
    )
    return tmp_path


def _saved_plan(project: Path, name: str = "demo") -> None:
    result = runner.invoke(
        app, ["plan", str(project / "request.json"), "--save", "--name", name, "-C", str(project)]
    )
    assert result.exit_code == 0, result.output


# ── render_tree ──────────────────────────────────────────────


def test_render_tree_diamond():
    tasks = link_tasks(
        [make_task("a"), make_task("b"), make_task("c", ["a", "b"]), make_task("d", ["c"])]
    )
    tasks[0].status = TaskStatus.COMPLETED
    lines = render_tree(tasks)

    assert lines[0].startswith("● a: Task a")
    assert lines[1] == "└── ○ c: Task c [executor/sonnet]"
    assert lines[2] == "    └── ○ d: Task d [executor/sonnet]"
    assert lines[3].startswith("○ b")
    assert lines[4].endswith("(see above)")


def test_render_tree_cycle_terminates():
    tasks = link_tasks([make_task("a", ["b"]), make_task("b", ["a"])])
    lines = render_tree(tasks)
    assert len(lines) == 3
    assert lines[-1].endswith("(see above)")


def test_tree_rows_carry_their_task():
    tasks = link_tasks([make_task("a"), make_task("b", ["a"])])
    tasks[0].status = TaskStatus.FAILED
    rows = tree_rows(tasks)
    assert [task.id for _, task in rows] == ["a", "b"]
    assert [line for line, _ in rows] == render_tree(tasks)


def test_render_tree_text_styles_rows_by_status():
    tasks = link_tasks([make_task("a"), make_task("b", ["a"])])
    tasks[0].status = TaskStatus.COMPLETED
    text = render_tree_text(tasks)

    assert text.plain == "\n".join(render_tree(tasks))
    styles = [span.style for span in text.spans]
    assert styles == [STATUS_STYLES[TaskStatus.COMPLETED], STATUS_STYLES[TaskStatus.PENDING]]


# ── Commands ─────────────────────────────────────────────────


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "Usage" in result.output


def test_init_sets_task_list(project: Path):
    result = runner.invoke(app, ["init", "demo", "-C", str(project)])

    assert result.exit_code == 0, result.output
    assert (project / "swarms" / "demo" / "state.json").exists()
    settings = json.loads((project / "settings.json").read_text())
    assert settings["env"]["CLAUDE_CODE_TASK_LIST_ID"] == "demo"


def test_init_without_task_list(project: Path):
    result = runner.invoke(app, ["init", "demo", "--no-task-list", "-C", str(project)])
    assert result.exit_code == 0, result.output
    assert not (project / "settings.json").exists()


def test_plan_json(project: Path):
    result = runner.invoke(app, ["plan", str(project / "request.json"), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["name"].startswith("Implementation:")
    assert len(data["tasks"]) == 5
    assert data["parallelism"] == "hybrid"


def test_plan_rejects_bad_json(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text("{nope")
    result = runner.invoke(app, ["plan", str(bad)])
    assert result.exit_code == 1
    assert "Could not read classification" in result.output


def _configure(project: Path, **options: str) -> None:
    config = project / ".taskswarm.yml"
    config.write_text(config.read_text() + "".join(f"  {k}: {v}\n" for k, v in options.items()))


def test_disabled_swarms_refuse_init(project: Path):
    _configure(project, enabled="false")
    result = runner.invoke(app, ["init", "demo", "-C", str(project)])

    assert result.exit_code == 1
    assert "Swarms are disabled" in result.output
    assert not (project / "swarms" / "demo").exists()


def test_disabled_swarms_refuse_save_but_still_plan(project: Path):
    _configure(project, enabled="false")
    request = str(project / "request.json")

    result = runner.invoke(app, ["plan", request, "--save", "--name", "demo", "-C", str(project)])
    assert result.exit_code == 1
    assert get_active_swarms(project / "swarms") == []

    result = runner.invoke(app, ["plan", request, "--json", "-C", str(project)])
    assert result.exit_code == 0, result.output


def test_plan_uses_configured_default_parallelism(project: Path):
    _configure(project, default_parallelism="sequential")
    result = runner.invoke(app, ["plan", str(project / "request.json"), "-C", str(project)])

    assert result.exit_code == 0, result.output
    assert "parallelism=sequential" in result.output


def test_plan_save_creates_active_swarm(project: Path):
    _saved_plan(project)
    assert get_active_swarms(project / "swarms") == ["demo"]


def test_status_json(project: Path):
    _saved_plan(project)
    result = runner.invoke(app, ["status", "--json", "-C", str(project)])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["name"] == "demo"
    assert data["status"] == "active"


def test_status_without_swarm(project: Path):
    result = runner.invoke(app, ["status", "-C", str(project)])
    assert result.exit_code == 1
    assert "No active swarm" in result.output


def test_tasks_json(project: Path):
    _saved_plan(project)
    result = runner.invoke(app, ["tasks", "--json", "-C", str(project)])
    assert result.exit_code == 0, result.output
    assert len(json.loads(result.output)) == 5


def test_tasks_tree(project: Path):
    _saved_plan(project)
    result = runner.invoke(app, ["tasks", "demo", "-C", str(project)])

    assert result.exit_code == 0, result.output
    assert "explore" in result.output
    assert "└── " in result.output


def test_ready_lists_root_only(project: Path):
    _saved_plan(project)
    result = runner.invoke(app, ["ready", "demo", "--json", "-C", str(project)])

    assert result.exit_code == 0, result.output
    configs = json.loads(result.output)
    assert len(configs) == 1
    assert configs[0]["subagent_type"] == "taskswarm:explore"
    assert configs[0]["run_in_background"] is True


def test_stop_archives_swarm(project: Path):
    _saved_plan(project)
    result = runner.invoke(app, ["stop", "demo", "-C", str(project)])

    assert result.exit_code == 0, result.output
    assert get_active_swarms(project / "swarms") == []
    history = get_swarm_history(project / "swarms")
    assert [e.status for e in history] == ["stopped"]


def test_stop_unknown_swarm(project: Path):
    result = runner.invoke(app, ["stop", "ghost", "-C", str(project)])
    assert result.exit_code == 1
    assert "Swarm state not found for: ghost" in result.output


def test_history_newest_first(project: Path):
    for name in ("first", "second"):
        _saved_plan(project, name)
        runner.invoke(app, ["stop", name, "-C", str(project)])

    result = runner.invoke(app, ["history", "--json", "-C", str(project)])
    assert result.exit_code == 0, result.output
    assert [e["name"] for e in json.loads(result.output)] == ["second", "first"]

    result = runner.invoke(app, ["history", "--json", "--limit", "1", "-C", str(project)])
    assert [e["name"] for e in json.loads(result.output)] == ["second"]


def test_agents_table():
    result = runner.invoke(app, ["agents"])
    assert result.exit_code == 0
    assert "architect" in result.output
