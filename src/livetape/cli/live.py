"""CLI commands for live feed ingestion.

NOTE: live sessions incur Databento billing.
"""

from __future__ import annotations

import signal
from typing import Optional

import typer
from typing_extensions import Annotated

live_app = typer.Typer(no_args_is_help=True)


@live_app.command("run")
def live_run(
    symbols: Annotated[
        Optional[list[str]], typer.Argument(help="Symbols to pre-subscribe")
    ] = None,
    dataset: Annotated[
        Optional[str], typer.Option("--dataset", "-d", help="Dataset to subscribe to")
    ] = None,
    out: Annotated[
        Optional[str],
        typer.Option("--out", "-o", help="Archive file for the DBN stream ('-' for stdout, *.zst compresses)"),
    ] = None,
    key: Annotated[
        Optional[str], typer.Option("--key", "-k", help="Databento API key (or set DATABENTO_API_KEY)")
    ] = None,
    schemas: Annotated[
        Optional[list[str]], typer.Option("--schema", "-s", help="Schema to subscribe, repeatable")
    ] = None,
    start: Annotated[
        Optional[str], typer.Option("--start", "-t", help="Start time as ISO 8601 (default: now)")
    ] = None,
    snapshot: Annotated[
        bool, typer.Option("--snapshot", "-n", help="Enable snapshot on subscription request")
    ] = False,
    db_path: Annotated[
        Optional[str], typer.Option("--db", help="DuckDB file (':memory:' for in-memory)")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging")] = False,
) -> None:
    """Stream live records into DuckDB while archiving the raw feed."""
    from livetape.cli.query import _get_manager
    from livetape.config.loader import get_settings, with_live_overrides
    from livetape.livedata.base import LifecycleError, LiveDataError, SetupError
    from livetape.livedata.databento_feed import DatabentoFeed
    from livetape.livedata.session import LiveSession
    from livetape.utils.logging import get_logger, setup_logging

    settings = get_settings()

    live = with_live_overrides(
        settings.live,
        symbols=symbols,
        dataset=dataset,
        out=out,
        schemas=schemas,
        start=start,
        api_key=key,
        snapshot=snapshot,
        verbose=verbose,
    )

    if live.verbose:
        setup_logging(settings.log_level, verbose=True, json_logs=settings.log_json)
    logger = get_logger(__name__)

    if not live.dataset:
        typer.echo("Error: missing required --dataset", err=True)
        raise typer.Exit(1)
    if not live.out:
        typer.echo("Error: missing required --out", err=True)
        raise typer.Exit(1)
    if not live.api_key.get_secret_value():
        typer.echo("Error: missing Databento API key, use --key or set DATABENTO_API_KEY", err=True)
        raise typer.Exit(1)
    if not live.symbols:
        typer.echo("Error: no symbols given, pass at least one or set LIVE_SYMBOLS", err=True)
        raise typer.Exit(1)

    manager = _get_manager(db_path)

    with manager.connect() as db:
        try:
            session = LiveSession.open(live, DatabentoFeed(live), db)
        except SetupError as e:
            logger.error("session_setup_failed", error=str(e))
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

        handlers = {
            sig: signal.signal(sig, lambda *_: session.stop())
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            stats = session.follow_stream()
        except LifecycleError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
        except LiveDataError as e:
            logger.exception("session_aborted")
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
        finally:
            for sig, previous in handlers.items():
                signal.signal(sig, previous)

    # stdout may be the archive, so the summary goes to stderr
    typer.echo(f"Processed {stats.records} records", err=True)
    for outcome, count in sorted(stats.outcomes.items()):
        typer.echo(f"  {outcome}: {count}", err=True)
