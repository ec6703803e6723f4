"""CLI commands for managing the DuckDB database."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

db_app = typer.Typer(no_args_is_help=True)
console = Console()


@db_app.command("init")
def db_init(
    db_path: Annotated[Optional[str], typer.Option("--db", help="DuckDB file")] = None,
) -> None:
    """Create the trades and candles tables and their indexes."""
    from livetape.cli.query import _get_manager

    with _get_manager(db_path).connect() as db:
        tables = db.migrate()

    typer.echo(f"Migrated {len(tables)} table(s): {', '.join(tables)}")


@db_app.command("info")
def db_info(
    db_path: Annotated[Optional[str], typer.Option("--db", help="DuckDB file")] = None,
) -> None:
    """Show table metadata, row counts, and column info."""
    from livetape.cli.query import _get_manager

    with _get_manager(db_path).connect() as db:
        info = db.table_info()

    if not info:
        typer.echo("No tables found. Run `livetape db init` or start a live session.")
        return

    table = Table(title="DuckDB Tables", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    table.add_column("Columns", justify="right")
    table.add_column("Column Names")

    for entry in info:
        if "error" in entry:
            table.add_row(entry["name"], "ERROR", "", entry["error"])
        else:
            table.add_row(
                entry["name"],
                f"{entry['rows']:,}",
                str(entry["columns"]),
                ", ".join(entry["column_names"]),
            )

    console.print(table)
