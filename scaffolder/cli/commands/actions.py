"""scaffolder actions: List the built-in actions."""

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


def actions_list():
    """List every built-in action with its description and dry-run support.

    Example:
        scaffolder actions
    """
    from scaffolder.actions.builtin import create_builtin_registry

    definitions = create_builtin_registry().list()

    if not definitions:
        console.print("[yellow]No actions registered.[/yellow]")
        return

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title=f"[bold]{len(definitions)} Registered Actions[/bold]",
    )
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Inputs", style="dim")
    table.add_column("Dry run?", width=9)

    for definition in sorted(definitions, key=lambda a: a.id):
        inputs = ", ".join(sorted(((definition.input_schema or {}).get("properties") or {}).keys()))
        table.add_row(
            definition.id,
            f"[dim]{definition.description}[/dim]",
            inputs or "-",
            "[green]yes[/green]" if definition.supports_dry_run else "[dim]no[/dim]",
        )

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Add custom actions with the [cyan]@action[/cyan] decorator.[/dim]")
