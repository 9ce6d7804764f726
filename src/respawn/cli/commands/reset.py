"""Reset command: delete all rows from the in-scope tables."""

from typing import Annotated

import typer

from respawn.cli.context import CLIContext
from respawn.cli.options import (
    ExcludeSchemaOpt,
    IgnoreTableOpt,
    NoTemporalOpt,
    ReseedOpt,
    SchemaOpt,
    TableOpt,
    TimeoutOpt,
)
from respawn.cli.output import OutputFormatter
from respawn.cli.parsing import build_options
from respawn.core.respawner import Respawner


def reset_command(
    ctx: typer.Context,
    schema: SchemaOpt = None,
    exclude_schema: ExcludeSchemaOpt = None,
    table: TableOpt = None,
    ignore_table: IgnoreTableOpt = None,
    reseed: ReseedOpt = False,
    no_temporal: NoTemporalOpt = False,
    timeout: TimeoutOpt = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Delete every row from the in-scope tables.

    Schema is left untouched. Use `respawn plan` to see what will run.

    Examples:

        respawn reset --yes
        respawn -d sqlite:///./test.db reset -i alembic_version --reseed -y
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    if not yes and not cli_ctx.json_output:
        confirm = typer.confirm(f"Delete all rows from '{cli_ctx.display_url}'?")
        if not confirm:
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    try:
        options = build_options(
            schema, exclude_schema, table, ignore_table, reseed, no_temporal, timeout
        )
        engine = cli_ctx.get_engine()
        respawner = Respawner.create(engine, options)
        respawner.reset(engine)

        formatter.print_success(
            "Database reset",
            {
                "tables": len(respawner.tables),
                "reseeded": respawner.reseed_sql is not None,
                "temporal_tables": len(respawner.temporal_tables),
            },
        )

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
