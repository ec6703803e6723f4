"""CLI commands for querying trades and candles via DuckDB."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

query_app = typer.Typer(no_args_is_help=True)
console = Console()


def _get_manager(db_path: str | None = None):
    from livetape.config.loader import get_settings
    from livetape.storage.duckdb_manager import DuckDBManager

    if db_path:
        return DuckDBManager(db_path)
    settings = get_settings()
    return DuckDBManager(settings.storage.duckdb_path)


def _unix_seconds(value: str | None, option: str) -> int | None:
    from livetape.utils.dates import parse_iso8601, to_unix_seconds

    try:
        parsed = parse_iso8601(value)
    except ValueError as e:
        typer.echo(f"Error: invalid {option} '{value}': {e}", err=True)
        raise typer.Exit(1)
    return to_unix_seconds(parsed) if parsed else None


@query_app.command("trades")
def query_trades(
    ticker: Annotated[str, typer.Option("--ticker", "-t", help="Ticker symbol")],
    start: Annotated[
        Optional[str], typer.Option("--start", help="Range start (inclusive), ISO 8601")
    ] = None,
    end: Annotated[
        Optional[str], typer.Option("--end", help="Range end (exclusive), ISO 8601")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Max trades to return")] = 25,
    oldest_first: Annotated[
        bool, typer.Option("--oldest-first", help="Sort ascending by time")
    ] = False,
    csv_out: Annotated[
        Optional[str], typer.Option("--csv", help="Export results to CSV file path")
    ] = None,
    db_path: Annotated[Optional[str], typer.Option("--db", help="DuckDB file")] = None,
) -> None:
    """Show the last trades for a ticker."""
    from livetape.storage.queries import last_trades

    if limit <= 0:
        typer.echo("Error: --limit must be positive", err=True)
        raise typer.Exit(1)

    start_ts = _unix_seconds(start, "--start")
    end_ts = _unix_seconds(end, "--end")

    with _get_manager(db_path).connect() as db:
        db.migrate()
        df = last_trades(db, ticker, start_ts, end_ts, limit=limit, newest_first=not oldest_first)

    if csv_out:
        df.write_csv(csv_out)
        typer.echo(f"Exported {len(df)} rows to {csv_out}")
    elif df.is_empty():
        typer.echo(f"No trades found for {ticker}")
    else:
        _print_dataframe(df)


@query_app.command("candles")
def query_candles(
    ticker: Annotated[str, typer.Option("--ticker", "-t", help="Ticker symbol")],
    start: Annotated[
        Optional[str], typer.Option("--start", help="Range start (inclusive), ISO 8601")
    ] = None,
    end: Annotated[
        Optional[str], typer.Option("--end", help="Range end (exclusive), ISO 8601")
    ] = None,
    csv_out: Annotated[
        Optional[str], typer.Option("--csv", help="Export to CSV")
    ] = None,
    db_path: Annotated[Optional[str], typer.Option("--db", help="DuckDB file")] = None,
) -> None:
    """Show one-minute candles for a ticker within a time range."""
    from livetape.storage.queries import candles

    start_ts = _unix_seconds(start, "--start")
    end_ts = _unix_seconds(end, "--end")

    with _get_manager(db_path).connect() as db:
        db.migrate()
        df = candles(db, ticker, start_ts, end_ts)

    if csv_out:
        df.write_csv(csv_out)
        typer.echo(f"Exported {len(df)} rows to {csv_out}")
    elif df.is_empty():
        typer.echo(f"No candles found for {ticker}")
    else:
        _print_dataframe(df)


@query_app.command("sql")
def query_sql(
    sql: Annotated[str, typer.Argument(help="SQL query to execute")],
    limit: Annotated[int, typer.Option("--limit", "-n", help="Max rows to display")] = 50,
    db_path: Annotated[Optional[str], typer.Option("--db", help="DuckDB file")] = None,
) -> None:
    """Run arbitrary SQL against the trades and candles tables."""
    with _get_manager(db_path).connect() as db:
        db.migrate()
        df = db.to_polars(sql)

    _print_dataframe(df.head(limit))
    if len(df) > limit:
        typer.echo(f"\n... showing {limit} of {len(df)} rows. Use --limit to see more.")


def _print_dataframe(df) -> None:
    """Print a Polars DataFrame as a Rich table."""
    table = Table(show_header=True, header_style="bold")

    for col in df.columns:
        table.add_column(col)

    for row in df.iter_rows():
        table.add_row(*[str(v) for v in row])

    console.print(table)
