"""Extra CLI commands: history, agents."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.table import Table

from taskswarm.cli.app import _resolve_config, app

console = Console()

_EXECUTION_STYLES = {
    "completed": "[green]✅ completed[/green]",
    "failed": "[red]❌ failed[/red]",
    "stopped": "[yellow]■ stopped[/yellow]",
}


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of executions to show"),
    as_json: bool = typer.Option(False, "--json", help="Print history as JSON"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Show archived swarm executions, newest first."""
    from taskswarm.swarm.persistence import get_swarm_history

    root = _resolve_config(cwd).storage_dir()
    executions = list(reversed(get_swarm_history(root)))[: max(limit, 0)]

    if as_json:
        console.print_json(json.dumps([e.to_dict() for e in executions]))
        return
    if not executions:
        console.print("[dim]No swarm history found.[/dim]")
        return

    table = Table(
        title="[bold cyan]Swarm History[/bold cyan]",
        border_style="cyan",
        show_lines=True,
    )
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Tasks", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("When", style="dim")

    for e in executions:
        table.add_row(
            e.name,
            _EXECUTION_STYLES.get(e.status, str(e.status)),
            f"{e.completed_count}/{e.task_count}",
            f"${e.total_cost:.4f}" if e.total_cost else "-",
            f"{e.duration / 1000:.1f}s",
            e.started_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def agents() -> None:
    """List the available worker agents."""
    from taskswarm.swarm.roles import get_all_roles_info

    table = Table(title="[bold cyan]Agents[/bold cyan]", border_style="cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Default model")
    table.add_column("Domains", style="dim")
    table.add_column("Description")
    for info in get_all_roles_info():
        table.add_row(
            info["name"],
            info["default_model"],
            ", ".join(info["domains"]),
            info["description"],
        )
    console.print(table)
