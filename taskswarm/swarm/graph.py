"""Dependency graph analysis for swarm tasks.

Pure functions over a list of ``SwarmTask``:

- ``build_graph`` / ``calculate_depths``: derive a ``DependencyNode`` per task.
- ``topological_sort``: Kahn ordering, raises ``CycleError`` on cycles.
- ``get_parallel_groups``: tiers of mutually independent tasks by depth.
- ``get_ready_tasks``: pending tasks whose blockers have all completed.
- ``detect_cycle`` / ``validate_dependencies``: integrity checks.
- ``get_critical_path``: longest dependency chain.

Nothing here raises on malformed input except ``topological_sort``.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from taskswarm.errors import CycleError
from taskswarm.swarm.types import DependencyNode, SwarmTask, TaskStatus

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


@dataclass
class ValidationResult:
    """Outcome of ``validate_dependencies``."""

    valid: bool
    errors: list[str] = field(default_factory=list)


# ── Graph construction ───────────────────────────────────────


def link_tasks(tasks: list[SwarmTask]) -> list[SwarmTask]:
    """Back-fill every task's ``blocks`` list from all ``blocked_by`` lists.

    Idempotent. References to unknown tasks are left in place so that
    ``validate_dependencies`` can report them.
    """
    by_id = {task.id: task for task in tasks}
    for task in tasks:
        for blocker_id in task.blocked_by:
            blocker = by_id.get(blocker_id)
            if blocker is not None and task.id not in blocker.blocks:
                blocker.blocks.append(task.id)
    return tasks


def build_graph(tasks: list[SwarmTask]) -> dict[str, DependencyNode]:
    """Create one ``DependencyNode`` per task and compute depths."""
    graph: dict[str, DependencyNode] = {}
    for task in tasks:
        graph[task.id] = DependencyNode(
            task_id=task.id,
            depth=0,
            blocked_by=list(task.blocked_by),
            blocks=list(task.blocks),
        )
    calculate_depths(graph)
    return graph


def calculate_depths(graph: dict[str, DependencyNode]) -> None:
    """Assign depths in place by breadth-first propagation from the roots.

    Roots (no blockers) get depth 0. A node is finalized and enqueued once
    every one of its blockers has a depth, at ``max(blocker depths) + 1``.
    Nodes whose blockers never resolve (cycle members, dangling references)
    keep the last depth assigned to them.
    """
    depths: dict[str, int] = {}
    queue: deque[str] = deque()
    queued: set[str] = set()

    for node_id, node in graph.items():
        if not node.blocked_by:
            node.depth = 0
            depths[node_id] = 0
            queue.append(node_id)
            queued.add(node_id)

    while queue:
        current_id = queue.popleft()
        current_depth = depths[current_id]

        for blocked_id in graph[current_id].blocks:
            blocked = graph.get(blocked_id)
            if blocked is None or blocked_id in queued:
                continue

            # provisional depth until every blocker is known
            if current_depth + 1 > blocked.depth:
                blocked.depth = current_depth + 1

            if all(dep in depths for dep in blocked.blocked_by):
                blocked.depth = max(depths[dep] for dep in blocked.blocked_by) + 1
                depths[blocked_id] = blocked.depth
                queue.append(blocked_id)
                queued.add(blocked_id)
                logger.debug("Depth of %s finalized at %d", blocked_id, blocked.depth)


# ── Ordering ─────────────────────────────────────────────────


def topological_sort(tasks: list[SwarmTask]) -> list[str]:
    """Return task IDs in an order that respects every dependency edge.

    Ties are broken by insertion order. Raises ``CycleError`` when the
    graph contains a cycle; call ``detect_cycle`` first for a non-raising
    check.
    """
    in_degree: dict[str, int] = {}
    adjacency: dict[str, list[str]] = {}
    for task in tasks:
        in_degree[task.id] = len(task.blocked_by)
        adjacency[task.id] = list(task.blocks)

    queue: deque[str] = deque(tid for tid, degree in in_degree.items() if degree == 0)
    order: list[str] = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for dependent in adjacency.get(current, []):
            if dependent not in in_degree:
                continue
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) < len(tasks):
        emitted = set(order)
        raise CycleError([t.id for t in tasks if t.id not in emitted])

    return order


def get_parallel_groups(tasks: list[SwarmTask]) -> list[list[str]]:
    """Group task IDs into tiers of equal depth, shallowest first.

    Tasks within one tier share no dependency edge and can run concurrently.
    """
    if not tasks:
        return []

    graph = build_graph(tasks)
    buckets: dict[int, list[str]] = {}
    for node_id, node in graph.items():
        buckets.setdefault(node.depth, []).append(node_id)

    return [buckets[depth] for depth in sorted(buckets)]


def get_ready_tasks(tasks: list[SwarmTask], completed_ids: Iterable[str]) -> list[str]:
    """Return pending tasks whose blockers are all in *completed_ids*."""
    completed = set(completed_ids)
    return [
        task.id
        for task in tasks
        if task.status == TaskStatus.PENDING
        and all(dep in completed for dep in task.blocked_by)
    ]


# ── Integrity ────────────────────────────────────────────────


def detect_cycle(tasks: list[SwarmTask]) -> list[str] | None:
    """Find one dependency cycle with a white/gray/black DFS.

    Follows ``blocks`` edges and ignores edges to unknown tasks. Returns the
    cycle as the DFS path from the first revisited node to the node that
    closed it, or ``None`` if the graph is acyclic.
    """
    if not tasks:
        return None

    adjacency = {task.id: list(task.blocks) for task in tasks}
    color = dict.fromkeys(adjacency, _WHITE)

    def dfs(node_id: str, path: list[str]) -> list[str] | None:
        color[node_id] = _GRAY
        path.append(node_id)

        for neighbor in adjacency[node_id]:
            if neighbor not in color:
                continue
            if color[neighbor] == _GRAY:
                return path[path.index(neighbor):]
            if color[neighbor] == _WHITE:
                cycle = dfs(neighbor, path)
                if cycle:
                    return cycle

        path.pop()
        color[node_id] = _BLACK
        return None

    for task in tasks:
        if color[task.id] == _WHITE:
            cycle = dfs(task.id, [])
            if cycle:
                return cycle
    return None


def get_critical_path(tasks: list[SwarmTask]) -> list[str]:
    """Return the longest dependency chain, root first.

    Returns ``[]`` for empty input or when the graph has no root or contains
    a cycle. Among equally long chains the first one found wins.
    """
    if not tasks:
        return []
    if not any(not task.blocked_by for task in tasks):
        return []

    try:
        order = topological_sort(tasks)
    except CycleError:
        return []

    by_id = {task.id: task for task in tasks}
    longest: dict[str, list[str]] = {}

    for task_id in order:
        best: list[str] = []
        for dep in by_id[task_id].blocked_by:
            candidate = longest.get(dep, [])
            if len(candidate) > len(best):
                best = candidate
        longest[task_id] = [*best, task_id]

    critical: list[str] = []
    for path in longest.values():
        if len(path) > len(critical):
            critical = path
    return critical


def validate_dependencies(tasks: list[SwarmTask]) -> ValidationResult:
    """Collect referential-integrity and cycle errors without raising."""
    errors: list[str] = []
    known = {task.id for task in tasks}

    for task in tasks:
        for field_name, refs in (("blockedBy", task.blocked_by), ("blocks", task.blocks)):
            for ref in refs:
                if ref == task.id:
                    errors.append(f"Task '{task.id}' has self-reference in {field_name}")
                elif ref not in known:
                    errors.append(
                        f"Task '{task.id}' references non-existent task '{ref}' in {field_name}"
                    )

    cycle = detect_cycle(tasks)
    if cycle:
        errors.append(f"Dependency cycle detected: {' -> '.join(cycle)}")

    return ValidationResult(valid=not errors, errors=errors)
