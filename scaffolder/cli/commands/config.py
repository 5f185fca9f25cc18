"""scaffolder config: Show resolved configuration."""

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


def config_show():
    """Show the resolved configuration.

    Reads from environment variables and .env file.

    Example:
        scaffolder config
    """
    from scaffolder.config import ScaffolderConfig
    cfg = ScaffolderConfig()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title="[bold]scaffolder Configuration[/bold]",
    )
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Env Var", style="dim")

    sections = [
        ("Workspace", ["working_directory", "preserve_workspace"]),
        ("Task specs", ["supported_api_versions", "checkpoint_version"]),
        ("Logging", ["log_level", "redaction_placeholder"]),
    ]

    first = True
    for section_name, fields in sections:
        if not first:
            table.add_row("", "", "")
        first = False
        table.add_row(f"[bold dim]── {section_name} ──[/bold dim]", "", "")
        for attr in fields:
            table.add_row(f"  {attr}", str(getattr(cfg, attr)), f"SCAFFOLDER_{attr.upper()}")

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Source: environment variables + .env file (prefix: SCAFFOLDER_)[/dim]")
