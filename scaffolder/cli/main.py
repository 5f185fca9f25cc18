"""scaffolder CLI: Typer application."""

import typer
from rich.console import Console

from scaffolder.version import __version__

app = typer.Typer(
    name="scaffolder",
    help="Run templated scaffolding tasks step by step.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
):
    """scaffolder CLI."""
    if version:
        console.print(f"scaffolder v{__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


from scaffolder.cli.commands import actions, config, run  # noqa: E402

app.command(name="run", help="Execute a task file")(run.run_task)
app.command(name="actions", help="List the built-in actions")(actions.actions_list)
app.command(name="config", help="Show resolved configuration")(config.config_show)


if __name__ == "__main__":
    app()
