"""Root CLI application."""

from __future__ import annotations

import typer

from livetape.cli.db import db_app
from livetape.cli.live import live_app
from livetape.cli.query import query_app

app = typer.Typer(
    name="livetape",
    help="Live market-data ingestion into DuckDB with a raw DBN archive.",
    no_args_is_help=True,
)

app.add_typer(live_app, name="live", help="Stream a live feed into DuckDB")
app.add_typer(query_app, name="query", help="Query trades and candles")
app.add_typer(db_app, name="db", help="Manage DuckDB database")


def main() -> None:
    from livetape.config.loader import get_settings
    from livetape.utils.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    app()
