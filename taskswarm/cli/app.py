"""Typer CLI for taskswarm."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from taskswarm.config import SwarmConfig, load_config
from taskswarm.errors import SwarmError

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="taskswarm",
    help="Plan, schedule and track multi-agent task swarms.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Plan, schedule and track multi-agent task swarms."""
    from dotenv import load_dotenv
    from rich.logging import RichHandler

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _resolve_config(cwd: str) -> SwarmConfig:
    return load_config(str(Path(cwd).resolve())) or SwarmConfig()


def _active_swarm(root: Path, name: str | None = None) -> str:
    """Return *name*, or the first active swarm when no name is given."""
    from taskswarm.swarm.persistence import get_active_swarms

    if name:
        return name
    active = get_active_swarms(root)
    if not active:
        console.print(
            "[dim]No active swarm.[/dim] Run [bold cyan]taskswarm plan --save[/bold cyan] first."
        )
        raise typer.Exit(code=1)
    return active[0]


def _require_enabled(config: SwarmConfig) -> None:
    if not config.enabled:
        console.print(
            "[red]Swarms are disabled[/red] [dim](swarm.enabled is false in .taskswarm.yml)[/dim]"
        )
        raise typer.Exit(code=1)


def _fail(error: Exception) -> None:
    console.print(f"[red]{error}[/red]")
    raise typer.Exit(code=1)


@app.command()
def init(
    name: str = typer.Argument("default", help="Swarm name"),
    no_task_list: bool = typer.Option(
        False, "--no-task-list", help="Don't point the external task list at this swarm"
    ),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Create storage for a swarm and point the task list at it."""
    from taskswarm.swarm.persistence import init_persistence, set_task_list_id

    config = _resolve_config(cwd)
    _require_enabled(config)
    directory = init_persistence(name, config.storage_dir())

    lines = [f"[bold cyan]Swarm initialized[/bold cyan]  {name}", f"[dim]{directory}[/dim]"]
    if not no_task_list:
        settings = set_task_list_id(name, config.settings_path)
        lines.append(f"[dim]Task list set in {settings}[/dim]")
    console.print(Panel("\n".join(lines), border_style="cyan"))


@app.command()
def plan(
    classification_file: Path = typer.Argument(
        ..., help="JSON file holding the classified request", exists=True, dir_okay=False
    ),
    name: str | None = typer.Option(None, "--name", help="Name for the saved swarm"),
    save: bool = typer.Option(False, "--save", help="Persist the plan as an active swarm"),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Build a swarm plan from a classified request.

    Examples:
        taskswarm plan request.json
        taskswarm plan request.json --save --name auth-feature
    """
    from taskswarm.swarm.classification import IntentClassification
    from taskswarm.swarm.graph import get_critical_path, get_parallel_groups
    from taskswarm.swarm.orchestrator import SwarmOrchestrator
    from taskswarm.swarm.planner import create_swarm_plan, get_swarm_recommendation

    try:
        data = json.loads(classification_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read classification: {e}[/red]")
        raise typer.Exit(code=1) from e
    if not isinstance(data, dict):
        console.print("[red]Classification must be a JSON object.[/red]")
        raise typer.Exit(code=1)

    config = _resolve_config(cwd)
    if save:
        _require_enabled(config)

    classification = IntentClassification.from_dict(data)
    swarm_plan = create_swarm_plan(classification)
    recommendation = get_swarm_recommendation(classification, config.default_parallelism)

    if save:
        swarm_name = name or f"swarm-{swarm_plan.id[:8]}"
        orchestrator = SwarmOrchestrator(
            swarm_name,
            swarm_plan,
            max_concurrent_workers=config.max_concurrent_workers,
            root=config.storage_dir(),
            cost_tracking=config.cost_tracking,
        )
        try:
            orchestrator.start()
        except SwarmError as e:
            _fail(e)

    if as_json:
        console.print_json(json.dumps(swarm_plan.to_dict()))
        return

    table = Table(
        title=f"[bold cyan]{swarm_plan.name}[/bold cyan]",
        border_style="cyan",
        show_lines=True,
    )
    table.add_column("Task", style="dim")
    table.add_column("Subject", style="cyan")
    table.add_column("Agent")
    table.add_column("Model")
    table.add_column("Blocked by", style="dim")
    for task in swarm_plan.tasks:
        table.add_row(
            task.id,
            task.subject,
            task.agent,
            str(task.model),
            ", ".join(task.blocked_by) or "-",
        )
    console.print(table)

    for i, tier in enumerate(get_parallel_groups(swarm_plan.tasks), 1):
        console.print(f"  [bold]Tier {i}[/bold]  {', '.join(tier)}")
    critical = get_critical_path(swarm_plan.tasks)
    console.print(f"  [bold]Critical path[/bold]  {' → '.join(critical) or '-'}")
    console.print(
        f"  [dim]decompose={recommendation.decompose}  "
        f"parallelism={recommendation.parallelism}  "
        f"suggested subtasks={recommendation.suggested_subtasks}[/dim]"
    )
    if save:
        console.print(f"\n[bold green]✓ Saved as {swarm_name}[/bold green]")


@app.command()
def status(
    name: str | None = typer.Argument(None, help="Swarm name (default: first active)"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw state as JSON"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Show the state of an active swarm."""
    from taskswarm.swarm.persistence import load_swarm_state
    from taskswarm.swarm.types import TaskStatus

    root = _resolve_config(cwd).storage_dir()
    swarm_name = _active_swarm(root, name)
    state = load_swarm_state(swarm_name, root)
    if state is None:
        console.print(f"[red]No state for swarm {swarm_name}.[/red]")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(json.dumps(state.to_dict()))
        return

    total = len(state.plan.tasks)
    running = sum(1 for t in state.plan.tasks if t.status == TaskStatus.IN_PROGRESS)
    console.print(
        Panel(
            f"[bold cyan]{state.name}[/bold cyan]  [dim]{state.status}[/dim]\n\n"
            f"[bold]{state.plan.name}[/bold]\n"
            f"completed {len(state.completed_tasks)}/{total}  ·  "
            f"running {running}  ·  failed {len(state.failed_tasks)}\n"
            f"cost ${state.total_cost:.4f}  ·  "
            f"started {state.started_at.strftime('%Y-%m-%d %H:%M')}",
            border_style="red" if state.failed_tasks else "cyan",
        )
    )


@app.command()
def tasks(
    name: str | None = typer.Argument(None, help="Swarm name (default: first active)"),
    as_json: bool = typer.Option(False, "--json", help="Print the tasks as JSON"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Show the dependency tree of an active swarm."""
    from taskswarm.cli.render import render_tree_text
    from taskswarm.swarm.persistence import load_swarm_state

    root = _resolve_config(cwd).storage_dir()
    swarm_name = _active_swarm(root, name)
    state = load_swarm_state(swarm_name, root)
    if state is None:
        console.print(f"[red]No state for swarm {swarm_name}.[/red]")
        raise typer.Exit(code=1)

    if as_json:
        console.print_json(json.dumps([t.to_dict() for t in state.plan.tasks]))
        return

    console.print(f"[bold cyan]{state.plan.name}[/bold cyan]")
    console.print(render_tree_text(state.plan.tasks), highlight=False)


@app.command()
def ready(
    name: str | None = typer.Argument(None, help="Swarm name (default: first active)"),
    as_json: bool = typer.Option(False, "--json", help="Print spawn configs as JSON"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """List spawn configs for tasks that can start now. State is not changed."""
    from taskswarm.swarm.graph import get_ready_tasks
    from taskswarm.swarm.persistence import load_swarm_state
    from taskswarm.swarm.spawner import build_batch_spawn_configs

    root = _resolve_config(cwd).storage_dir()
    swarm_name = _active_swarm(root, name)
    state = load_swarm_state(swarm_name, root)
    if state is None:
        console.print(f"[red]No state for swarm {swarm_name}.[/red]")
        raise typer.Exit(code=1)

    ready_ids = set(get_ready_tasks(state.plan.tasks, state.completed_tasks))
    configs = build_batch_spawn_configs([t for t in state.plan.tasks if t.id in ready_ids])

    if as_json:
        console.print_json(json.dumps([c.to_dict() for c in configs]))
        return
    if not configs:
        console.print("[dim]No tasks ready.[/dim]")
        return

    table = Table(title="[bold cyan]Ready tasks[/bold cyan]", border_style="cyan")
    table.add_column("Task", style="dim")
    table.add_column("Agent", style="cyan")
    table.add_column("Model")
    for config in configs:
        table.add_row(config.task_id, config.subagent_type, str(config.model))
    console.print(table)


@app.command()
def stop(
    name: str | None = typer.Argument(None, help="Swarm name (default: first active)"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Stop a swarm and archive it to the history log."""
    from taskswarm.swarm.orchestrator import SwarmOrchestrator

    root = _resolve_config(cwd).storage_dir()
    swarm_name = _active_swarm(root, name)
    try:
        execution = SwarmOrchestrator.resume(swarm_name, root=root).stop()
    except SwarmError as e:
        _fail(e)
        return

    console.print(
        f"[bold yellow]■ Stopped {execution.name}[/bold yellow]  "
        f"[dim]{execution.completed_count}/{execution.task_count} tasks  "
        f"${execution.total_cost:.4f}[/dim]"
    )


# Register extra commands (history, agents)
import taskswarm.cli.commands as _commands  # noqa: F401, E402
