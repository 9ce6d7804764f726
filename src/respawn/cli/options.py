"""Scope options shared by the plan and reset commands."""

from typing import Annotated

import typer

SchemaOpt = Annotated[
    list[str] | None,
    typer.Option("--schema", "-s", help="Only reset tables in this schema (repeatable)"),
]

ExcludeSchemaOpt = Annotated[
    list[str] | None,
    typer.Option("--exclude-schema", "-x", help="Skip tables in this schema (repeatable)"),
]

TableOpt = Annotated[
    list[str] | None,
    typer.Option("--table", "-t", help="Only reset this table, 'name' or 'schema.name' (repeatable)"),
]

IgnoreTableOpt = Annotated[
    list[str] | None,
    typer.Option(
        "--ignore-table", "-i", help="Never reset this table, 'name' or 'schema.name' (repeatable)"
    ),
]

ReseedOpt = Annotated[
    bool,
    typer.Option("--reseed", help="Reset identity/auto-increment counters after deleting"),
]

NoTemporalOpt = Annotated[
    bool,
    typer.Option("--no-temporal", help="Do not look for system-versioned tables"),
]

TimeoutOpt = Annotated[
    int | None,
    typer.Option("--timeout", min=1, help="Per-command timeout in seconds"),
]
