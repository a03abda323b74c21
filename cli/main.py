#!/usr/bin/env python3
"""
servicebinding-projector CLI - offline service binding projection

Main entrypoint for the servicebinding-projector command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import binding
from projector.config import ProjectorConfig
from projector.logging_config import setup_logging

app = typer.Typer(
    name="servicebinding-projector",
    help="Project service bindings into workload manifests",
    add_completion=False,
)

console = Console()

app.command("project")(binding.project_command)
app.command("unproject")(binding.unproject_command)
app.command("is-projected")(binding.is_projected_command)


@app.callback()
def _configure():
    setup_logging(ProjectorConfig.from_env())


@app.command()
def version():
    """Show version information."""
    from cli import __version__
    from projector import __version__ as projector_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]servicebinding-projector[/bold]", f"v{__version__}")
    table.add_row("Projector", f"v{projector_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
