"""Read queries consumed by the reporting layer.

Ranges are half-open `[start, end)` in UNIX seconds; either bound may be
omitted. Every call runs on its own cursor so it can race the ingestion loop.
"""

from __future__ import annotations

import polars as pl

from livetape.processing.schemas import CANDLE_QUERY_SCHEMA, TRADE_QUERY_SCHEMA
from livetape.storage.duckdb_manager import DuckDBManager
from livetape.storage.migrations import CANDLES_TABLE, TRADES_TABLE

DEFAULT_TRADE_LIMIT = 25


def _range_clause(start: int | None, end: int | None) -> tuple[str, list]:
    clauses, params = [], []
    if start is not None:
        clauses.append("timestamp >= ?")
        params.append(start)
    if end is not None:
        clauses.append("timestamp < ?")
        params.append(end)
    return "".join(f" AND {c}" for c in clauses), params


def last_trades(
    db: DuckDBManager,
    ticker: str,
    start: int | None = None,
    end: int | None = None,
    limit: int | None = DEFAULT_TRADE_LIMIT,
    newest_first: bool = True,
) -> pl.DataFrame:
    """Trades for a ticker in [start, end), newest or oldest first."""
    if limit is not None and limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    range_sql, range_params = _range_clause(start, end)
    order = "DESC" if newest_first else "ASC"
    sql = f"""
        SELECT timestamp, nanos, publisher, ticker, CAST(price AS DOUBLE) AS price, shares
        FROM {TRADES_TABLE}
        WHERE ticker = ?{range_sql}
        ORDER BY timestamp {order}, nanos {order}, publisher
    """
    params: list = [ticker, *range_params]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    return db.to_polars(sql, params).cast(TRADE_QUERY_SCHEMA)


def candles(
    db: DuckDBManager,
    ticker: str,
    start: int | None = None,
    end: int | None = None,
) -> pl.DataFrame:
    """One-minute candles for a ticker in [start, end), newest first."""
    range_sql, range_params = _range_clause(start, end)
    sql = f"""
        SELECT timestamp, nanos, publisher, ticker, volume,
               CAST(open AS DOUBLE) AS open, CAST(high AS DOUBLE) AS high,
               CAST(low AS DOUBLE) AS low, CAST(close AS DOUBLE) AS close
        FROM {CANDLES_TABLE}
        WHERE ticker = ?{range_sql}
        ORDER BY timestamp DESC, publisher
    """
    return db.to_polars(sql, [ticker, *range_params]).cast(CANDLE_QUERY_SCHEMA)
