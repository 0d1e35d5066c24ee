"""Task planner — turns a classified request into a linked swarm plan.

Each intent has a fixed workflow template (explore → design → act → verify
and variations). Tasks are wired through ``blocked_by`` and the reverse
``blocks`` edges are back-filled by ``link_tasks`` before a plan is returned,
so every plan coming out of this module is bidirectionally consistent.
"""

from __future__ import annotations

import logging
import uuid

from taskswarm.swarm.classification import Complexity, IntentClassification, IntentType
from taskswarm.swarm.graph import link_tasks
from taskswarm.swarm.spawner import DEFAULT_AGENT, select_model
from taskswarm.swarm.types import (
    ModelTier,
    ParallelismMode,
    SwarmPlan,
    SwarmRecommendation,
    SwarmTask,
)

logger = logging.getLogger(__name__)

# (complexity, intent) → suggested subtask count; "*" is the per-complexity default
_SUGGESTED_SUBTASKS: dict[str, dict[str, int]] = {
    Complexity.TRIVIAL: {"*": 1},
    Complexity.SIMPLE: {"*": 1},
    Complexity.MODERATE: {
        IntentType.RESEARCH: 2,
        IntentType.DEBUGGING: 3,
        "*": 3,
    },
    Complexity.COMPLEX: {
        IntentType.RESEARCH: 5,
        IntentType.DEBUGGING: 6,
        IntentType.REFACTORING: 7,
        "*": 8,
    },
    Complexity.ARCHITECTURAL: {
        IntentType.RESEARCH: 6,
        IntentType.PLANNING: 8,
        "*": 10,
    },
}


# ── Complexity and decomposition ─────────────────────────────


def classify_complexity(classification: IntentClassification) -> str:
    """Escalate the classifier's complexity using the user's signals.

    Rules run in order against the current value and only ever escalate:
    thorough simple → moderate; 3+ domains moderate → complex;
    planning complex → architectural.
    """
    complexity = classification.complexity

    if classification.signals.wants_thorough and complexity == Complexity.SIMPLE:
        complexity = Complexity.MODERATE

    if len(classification.domains) >= 3 and complexity == Complexity.MODERATE:
        complexity = Complexity.COMPLEX

    if classification.signals.wants_planning and complexity == Complexity.COMPLEX:
        complexity = Complexity.ARCHITECTURAL

    return complexity


def should_decompose(complexity: str) -> bool:
    return complexity in (Complexity.MODERATE, Complexity.COMPLEX, Complexity.ARCHITECTURAL)


def get_suggested_subtasks(complexity: str, intent: str) -> int:
    """Hint at how many subtasks a request of this shape usually needs."""
    table = _SUGGESTED_SUBTASKS.get(complexity)
    if table is None:
        return 1
    return table.get(intent, table["*"])


# ── Task helpers ─────────────────────────────────────────────


def create_task_template(
    task_id: str,
    subject: str,
    description: str,
    agent: str,
    model: ModelTier,
    blocked_by: list[str] | None = None,
) -> SwarmTask:
    """Create a pending task; ``blocks`` is filled in by ``link_tasks``."""
    return SwarmTask(
        id=task_id,
        subject=subject,
        description=description,
        agent=agent,
        model=model,
        blocked_by=list(blocked_by or []),
        blocks=[],
    )


def _task_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _subject(classification: IntentClassification) -> str:
    domain = classification.domains[0] if classification.domains else "general"
    return f"{classification.type} task ({domain})"


def _make_plan(
    kind: str,
    classification: IntentClassification,
    tasks: list[SwarmTask],
    parallelism: ParallelismMode,
) -> SwarmPlan:
    link_tasks(tasks)
    plan = SwarmPlan(
        id=str(uuid.uuid4()),
        name=f"{kind}: {_subject(classification)}",
        tasks=tasks,
        parallelism=parallelism,
    )
    logger.info(
        "Planned %r with %d task(s), parallelism=%s", plan.name, len(tasks), parallelism
    )
    return plan


class _Step:
    """Shorthand for declaring one workflow step inside a plan builder."""

    def __init__(self, complexity: str) -> None:
        self.complexity = complexity

    def __call__(
        self,
        task_id: str,
        subject: str,
        description: str,
        agent: str,
        blocked_by: list[str] | None = None,
    ) -> SwarmTask:
        return create_task_template(
            task_id,
            subject,
            description,
            agent,
            select_model(self.complexity, agent),
            blocked_by,
        )


# ── Plan builders ────────────────────────────────────────────


def build_implementation_plan(classification: IntentClassification) -> SwarmPlan:
    """explore → architect → {executor, qa-tester} → verify."""
    step = _Step(classify_complexity(classification))
    explore, architect = _task_id("explore"), _task_id("architect")
    executor, tests, verify = _task_id("executor"), _task_id("qa-impl"), _task_id("verify")

    tasks = [
        step(
            explore,
            "Explore codebase",
            "Search for relevant files, understand existing patterns, "
            "and identify areas to modify.",
            "explore",
        ),
        step(
            architect,
            "Design implementation",
            "Based on exploration results, design the implementation approach "
            "and identify all files to modify.",
            "architect",
            [explore],
        ),
        step(
            executor,
            "Implement changes",
            "Execute the implementation plan, making all necessary code changes.",
            "executor",
            [architect],
        ),
        step(
            tests,
            "Write tests",
            "Write or update tests to cover the new implementation.",
            "qa-tester",
            [architect],
        ),
        step(
            verify,
            "Verify implementation",
            "Run tests, check for errors, and verify the implementation is complete.",
            "qa-tester",
            [executor, tests],
        ),
    ]
    return _make_plan("Implementation", classification, tasks, ParallelismMode.HYBRID)


def _build_linear_plan(
    kind: str,
    classification: IntentClassification,
    steps: list[tuple[str, str, str, str]],
) -> SwarmPlan:
    step = _Step(classify_complexity(classification))
    tasks: list[SwarmTask] = []
    previous: str | None = None
    for prefix, subject, description, agent in steps:
        task_id = _task_id(prefix)
        tasks.append(step(task_id, subject, description, agent, [previous] if previous else None))
        previous = task_id
    return _make_plan(kind, classification, tasks, ParallelismMode.SEQUENTIAL)


def build_debugging_plan(classification: IntentClassification) -> SwarmPlan:
    """explore → architect → executor → qa-tester, strictly sequential."""
    return _build_linear_plan(
        "Debugging",
        classification,
        [
            (
                "explore",
                "Investigate issue",
                "Search for relevant code, error patterns, and potential root causes.",
                "explore",
            ),
            (
                "architect",
                "Diagnose root cause",
                "Analyze the findings, identify the root cause, and plan the fix.",
                "architect",
            ),
            ("executor", "Implement fix", "Apply the fix based on the diagnosis.", "executor"),
            (
                "qa",
                "Verify fix",
                "Run tests and verify the bug is fixed without regressions.",
                "qa-tester",
            ),
        ],
    )


def build_refactoring_plan(classification: IntentClassification) -> SwarmPlan:
    """explore → architect → executor → qa-tester, strictly sequential."""
    return _build_linear_plan(
        "Refactoring",
        classification,
        [
            (
                "explore",
                "Map refactoring scope",
                "Identify all code to refactor, dependencies, and usage patterns.",
                "explore",
            ),
            (
                "architect",
                "Plan refactoring",
                "Design the refactoring approach, identify breaking changes, "
                "and plan migration.",
                "architect",
            ),
            (
                "executor",
                "Execute refactoring",
                "Apply the refactoring changes across all affected files.",
                "executor",
            ),
            (
                "qa",
                "Validate refactoring",
                "Run tests, verify behavior is preserved, and check for regressions.",
                "qa-tester",
            ),
        ],
    )


def build_research_plan(classification: IntentClassification) -> SwarmPlan:
    """One explore task per domain (or 1–3 generic ones) feeding a synthesis."""
    complexity = classify_complexity(classification)
    step = _Step(complexity)
    tasks: list[SwarmTask] = []
    explore_ids: list[str] = []

    if len(classification.domains) >= 2:
        for domain in classification.domains:
            task_id = _task_id(f"explore-{domain}")
            explore_ids.append(task_id)
            tasks.append(
                step(
                    task_id,
                    f"Explore {domain}",
                    f"Research {domain}-related aspects, patterns, and relevant information.",
                    "explore",
                )
            )
    else:
        count = {Complexity.TRIVIAL: 1, Complexity.SIMPLE: 2}.get(complexity, 3)
        for i in range(1, count + 1):
            task_id = _task_id(f"explore-{i}")
            explore_ids.append(task_id)
            tasks.append(
                step(
                    task_id,
                    f"Explore area {i}",
                    "Research and gather information on relevant aspects.",
                    "explore",
                )
            )

    tasks.append(
        step(
            _task_id("synthesize"),
            "Synthesize findings",
            "Combine research findings into a coherent summary with recommendations.",
            "architect",
            explore_ids,
        )
    )
    return _make_plan("Research", classification, tasks, ParallelismMode.HYBRID)


def build_review_plan(classification: IntentClassification) -> SwarmPlan:
    """explore → {security, architect} → synthesize."""
    step = _Step(classify_complexity(classification))
    explore, security = _task_id("explore"), _task_id("security")
    architect, synthesize = _task_id("architect"), _task_id("synthesize")

    tasks = [
        step(
            explore,
            "Gather code context",
            "Identify all relevant code to review and understand the scope.",
            "explore",
        ),
        step(
            security,
            "Security review",
            "Analyze code for security vulnerabilities and best practices.",
            "security",
            [explore],
        ),
        step(
            architect,
            "Architecture review",
            "Review code structure, patterns, and architectural decisions.",
            "architect",
            [explore],
        ),
        step(
            synthesize,
            "Compile review",
            "Synthesize findings into a comprehensive review report.",
            "architect",
            [security, architect],
        ),
    ]
    return _make_plan("Review", classification, tasks, ParallelismMode.HYBRID)


def build_simple_plan(classification: IntentClassification) -> SwarmPlan:
    """A single task for the classifier's first recommended agent."""
    complexity = classify_complexity(classification)
    agents = classification.recommendation.agents
    agent = agents[0] if agents else DEFAULT_AGENT

    task = create_task_template(
        _task_id(agent),
        _subject(classification),
        f"Execute the {classification.type} task directly.",
        agent,
        select_model(complexity, agent),
    )
    return _make_plan("Task", classification, [task], ParallelismMode.SEQUENTIAL)


_BUILDERS = {
    IntentType.IMPLEMENTATION: build_implementation_plan,
    IntentType.DEBUGGING: build_debugging_plan,
    IntentType.REFACTORING: build_refactoring_plan,
    IntentType.RESEARCH: build_research_plan,
    IntentType.REVIEW: build_review_plan,
    IntentType.PLANNING: build_research_plan,
    IntentType.MAINTENANCE: build_refactoring_plan,
    IntentType.CONVERSATION: build_simple_plan,
}


# ── Entry points ─────────────────────────────────────────────


def create_swarm_plan(classification: IntentClassification) -> SwarmPlan:
    """Build the plan for a classified request.

    Requests that don't warrant decomposition get a single-task plan;
    otherwise the intent picks the workflow, with unknown intents treated
    as implementation work.
    """
    complexity = classify_complexity(classification)
    if not should_decompose(complexity):
        return build_simple_plan(classification)

    builder = _BUILDERS.get(classification.type, build_implementation_plan)
    return builder(classification)


def get_swarm_recommendation(
    classification: IntentClassification,
    default_parallelism: ParallelismMode | str = ParallelismMode.HYBRID,
) -> SwarmRecommendation:
    """Advise on decomposition without building a plan.

    *default_parallelism* applies to decomposed work that neither its intent
    nor an architectural complexity pins to a mode.
    """
    complexity = classify_complexity(classification)
    decompose = should_decompose(complexity)

    if not decompose:
        parallelism = ParallelismMode.SEQUENTIAL
    elif classification.type == IntentType.RESEARCH:
        parallelism = ParallelismMode.PARALLEL
    elif classification.type == IntentType.DEBUGGING:
        parallelism = ParallelismMode.SEQUENTIAL
    elif complexity == Complexity.ARCHITECTURAL:
        parallelism = ParallelismMode.HYBRID
    else:
        parallelism = ParallelismMode(default_parallelism)

    return SwarmRecommendation(
        decompose=decompose,
        suggested_subtasks=get_suggested_subtasks(complexity, classification.type),
        parallelism=parallelism,
    )
