"""Respawn CLI - Main entry point."""

import logging
from typing import Annotated

import typer

import respawn
from respawn.cli.context import CLIContext, get_database_url

# Create main Typer app
app = typer.Typer(
    name="respawn",
    help="Respawn CLI - reset test databases without dropping schema",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="RESPAWN_DATABASE_URL",
            help="Database URL (PostgreSQL, SQL Server, MySQL or SQLite)",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log discovery and reset progress to stderr",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    ctx.obj = CLIContext(
        database_url=get_database_url(database),
        echo=echo,
        json_output=json_output,
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"Respawn v{respawn.__version__}")


# Register commands
from respawn.cli.commands import plan, reset

app.command(name="plan")(plan.plan_command)
app.command(name="reset")(reset.reset_command)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
