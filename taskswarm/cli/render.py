"""Text rendering helpers shared by the CLI commands."""

from __future__ import annotations

from rich.text import Text

from taskswarm.swarm.types import SwarmTask, TaskStatus

STATUS_ICONS: dict[str, str] = {
    TaskStatus.PENDING: "○",
    TaskStatus.IN_PROGRESS: "◐",
    TaskStatus.COMPLETED: "●",
    TaskStatus.FAILED: "✗",
}

STATUS_STYLES: dict[str, str] = {
    TaskStatus.PENDING: "dim",
    TaskStatus.IN_PROGRESS: "yellow",
    TaskStatus.COMPLETED: "green",
    TaskStatus.FAILED: "red",
}


def task_label(task: SwarmTask) -> str:
    icon = STATUS_ICONS.get(task.status, "?")
    return f"{icon} {task.id}: {task.subject} [{task.agent}/{task.model}]"


def tree_rows(tasks: list[SwarmTask]) -> list[tuple[str, SwarmTask]]:
    """Lay the dependency graph out as an indented tree, one row per entry.

    Roots are tasks with no known blockers; children follow ``blocks``
    edges. A task reachable from several parents is drawn in full once and
    referenced as ``(see above)`` afterwards, which also keeps cycles finite.
    Each row carries the task it shows.
    """
    by_id = {task.id: task for task in tasks}
    rows: list[tuple[str, SwarmTask]] = []
    seen: set[str] = set()

    def walk(task: SwarmTask, prefix: str, is_last: bool, is_root: bool) -> None:
        connector = "" if is_root else ("└── " if is_last else "├── ")
        if task.id in seen:
            rows.append((f"{prefix}{connector}{task_label(task)} (see above)", task))
            return
        seen.add(task.id)
        rows.append((f"{prefix}{connector}{task_label(task)}", task))

        children = [by_id[child] for child in task.blocks if child in by_id]
        child_prefix = prefix if is_root else prefix + ("    " if is_last else "│   ")
        for i, child in enumerate(children):
            walk(child, child_prefix, i == len(children) - 1, False)

    for task in tasks:
        if not any(dep in by_id for dep in task.blocked_by):
            walk(task, "", True, True)

    # whatever is left sits on a cycle with no root above it
    for task in tasks:
        if task.id not in seen:
            walk(task, "", True, True)

    return rows


def render_tree(tasks: list[SwarmTask]) -> list[str]:
    return [line for line, _ in tree_rows(tasks)]


def render_tree_text(tasks: list[SwarmTask]) -> Text:
    """The tree as rich ``Text``, each row styled by its task's status."""
    text = Text()
    for i, (line, task) in enumerate(tree_rows(tasks)):
        if i:
            text.append("\n")
        text.append(line, style=STATUS_STYLES.get(task.status, ""))
    return text
