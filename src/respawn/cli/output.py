"""Output formatting for CLI commands."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from respawn.core.respawner import Respawner
from respawn.exceptions import RespawnError

console = Console()


def plan_to_dict(respawner: Respawner) -> dict[str, Any]:
    """Return the reset plan as a JSON-serializable dict."""
    return {
        "dialect": respawner.adapter.dialect_name,
        "tables": [str(table) for table in respawner.graph.to_delete],
        "relationships": sorted(str(rel) for rel in respawner.relationships),
        "cyclic_relationships": sorted(str(rel) for rel in respawner.graph.cyclic_relationships),
        "temporal_tables": [str(t) for t in respawner.temporal_tables],
        "delete_sql": respawner.delete_sql,
        "reseed_sql": respawner.reseed_sql,
    }


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_plan(self, respawner: Respawner) -> None:
        """Print the deletion order, broken cycles and rendered scripts.

        Args:
            respawner: A built respawner
        """
        plan = plan_to_dict(respawner)
        if self.json_mode:
            print(json.dumps(plan, indent=2))
            return

        console.print(f"[bold]Deletion order[/bold] ({len(plan['tables'])} tables)")
        order = Table(
            show_header=True,
            header_style="bold magenta",
        )
        order.add_column("#", justify="right")
        order.add_column("Table")
        for position, table in enumerate(plan["tables"], 1):
            order.add_row(str(position), table)
        console.print(order)

        if plan["cyclic_relationships"]:
            console.print("\n[bold yellow]Constraints disabled to break cycles:[/bold yellow]")
            for rel in plan["cyclic_relationships"]:
                console.print(f"  {rel}")

        if plan["temporal_tables"]:
            console.print("\n[bold]Temporal tables:[/bold]")
            for table in plan["temporal_tables"]:
                console.print(f"  {table}")

        console.print("\n[bold]Delete script:[/bold]")
        console.print(Syntax(plan["delete_sql"], "sql", word_wrap=True))
        if plan["reseed_sql"]:
            console.print("\n[bold]Reseed script:[/bold]")
            console.print(Syntax(plan["reseed_sql"], "sql", word_wrap=True))

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, RespawnError):
                print(json.dumps(error.to_dict(), indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, RespawnError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)
