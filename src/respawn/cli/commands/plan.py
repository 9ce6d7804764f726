"""Plan command: show what a reset would run."""

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


def plan_command(
    ctx: typer.Context,
    schema: SchemaOpt = None,
    exclude_schema: ExcludeSchemaOpt = None,
    table: TableOpt = None,
    ignore_table: IgnoreTableOpt = None,
    reseed: ReseedOpt = False,
    no_temporal: NoTemporalOpt = False,
    timeout: TimeoutOpt = None,
) -> None:
    """Show the deletion order and the scripts a reset would execute.

    Nothing is deleted.

    Examples:

        respawn plan
        respawn -d postgresql://localhost/app_test plan --schema public -i alembic_version
        respawn --json plan --reseed
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        options = build_options(
            schema, exclude_schema, table, ignore_table, reseed, no_temporal, timeout
        )
        respawner = Respawner.create(cli_ctx.get_engine(), options)
        formatter.print_plan(respawner)

    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
