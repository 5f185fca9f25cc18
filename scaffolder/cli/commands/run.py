"""scaffolder run: Execute a task file from the command line."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

console = Console()

_STATUS_COLOR = {
    "processing": "blue",
    "completed": "green",
    "skipped": "yellow",
    "failed": "red",
    "cancelled": "magenta",
}


def _print_logs(task) -> None:
    for message, metadata in task.logs:
        step_id = metadata.get("stepId")
        status = metadata.get("status")
        prefix = f"[dim]{step_id}[/dim] " if step_id else ""
        if status:
            color = _STATUS_COLOR.get(status, "white")
            prefix += f"[{color}]{status}[/{color}] "
        console.print(f"{prefix}{escape(message)}", highlight=False)


async def _execute(task, working_directory: Optional[str]):
    from scaffolder.actions.builtin import create_builtin_registry
    from scaffolder.config import ScaffolderConfig
    from scaffolder.core.engine import WorkflowRunner

    runner = WorkflowRunner(
        create_builtin_registry(),
        working_directory=working_directory,
        config=ScaffolderConfig(),
    )
    return await runner.execute(task)


def run_task(
    task_file: Path = typer.Argument(..., help="Task spec (YAML or JSON)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Skip actions that do not support dry run"),
    param: list[str] = typer.Option([], "--param", "-p", help="Parameter override, key=value"),
    secret: list[str] = typer.Option([], "--secret", "-s", help="Secret, key=value"),
    working_directory: Optional[str] = typer.Option(
        None, "--working-directory", "-w", help="Parent directory of the task workspace"
    ),
):
    """Execute every step of TASK_FILE and print the step log and the task output.

    Runs fully in-memory against the built-in actions.

    Example:
        scaffolder run task.yaml --param name=web --dry-run
    """
    from scaffolder.config import ScaffolderConfig
    from scaffolder.core.logger import configure_logging
    from scaffolder.core.task import InMemoryTaskContext
    from scaffolder.loader import load_task_spec, parse_pairs

    configure_logging(ScaffolderConfig().log_level)

    try:
        spec = load_task_spec(task_file)
        overrides = parse_pairs(param)
        secrets = parse_pairs(secret, typed=False)
    except Exception as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    if overrides:
        spec = spec.model_copy(update={"parameters": {**spec.parameters, **overrides}})
    task = InMemoryTaskContext(spec, secrets=secrets, is_dry_run=dry_run)

    try:
        response = asyncio.run(_execute(task, working_directory))
    except KeyboardInterrupt:
        _print_logs(task)
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(1)
    except Exception as exc:
        _print_logs(task)
        console.print(f"\n[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    _print_logs(task)
    title = "[bold blue]Task output (dry run)[/bold blue]" if dry_run else "[bold blue]Task output[/bold blue]"
    console.print()
    console.print(Panel(escape(json.dumps(response.output, indent=2, default=str)), title=title, border_style="blue"))
