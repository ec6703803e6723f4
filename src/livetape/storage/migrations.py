"""Idempotent DDL for the trades and candles tables."""

from __future__ import annotations

# Every index covers the same uniqueness domain as the primary key; `date`
# is derived from `timestamp`, so they only differ in scan order.
TRADES_MIGRATION = """
CREATE TABLE IF NOT EXISTS {table} (
    date DATE NOT NULL,
    timestamp BIGINT NOT NULL,
    nanos INTEGER NOT NULL,
    publisher INTEGER NOT NULL,
    ticker VARCHAR NOT NULL,
    price DECIMAL(19,3) NOT NULL,
    shares BIGINT NOT NULL,
    PRIMARY KEY (publisher, ticker, timestamp)
);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_publisher_date_ticker_timestamp_idx ON {table} (publisher, date, ticker, timestamp);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_publisher_ticker_date_timestamp_idx ON {table} (publisher, ticker, date, timestamp);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_publisher_timestamp_ticker_idx ON {table} (publisher, timestamp, ticker);
"""

CANDLES_MIGRATION = """
CREATE TABLE IF NOT EXISTS {table} (
    date DATE NOT NULL,
    timestamp BIGINT NOT NULL,
    nanos INTEGER NOT NULL,
    publisher INTEGER NOT NULL,
    ticker VARCHAR NOT NULL,
    volume BIGINT NOT NULL,
    open DECIMAL(19,3) NOT NULL,
    high DECIMAL(19,3) NOT NULL,
    low DECIMAL(19,3) NOT NULL,
    close DECIMAL(19,3) NOT NULL,
    PRIMARY KEY (publisher, ticker, timestamp)
);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_publisher_date_ticker_timestamp_idx ON {table} (publisher, date, ticker, timestamp);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_publisher_ticker_date_timestamp_idx ON {table} (publisher, ticker, date, timestamp);
CREATE UNIQUE INDEX IF NOT EXISTS {table}_publisher_timestamp_ticker_idx ON {table} (publisher, timestamp, ticker);
"""

TRADES_TABLE = "trades"
CANDLES_TABLE = "candles"

MIGRATIONS: dict[str, str] = {
    TRADES_TABLE: TRADES_MIGRATION,
    CANDLES_TABLE: CANDLES_MIGRATION,
}


def render(table: str) -> str:
    """Render the migration for a known table."""
    if table not in MIGRATIONS:
        raise ValueError(f"No migration for table '{table}'. Available: {list(MIGRATIONS)}")
    return MIGRATIONS[table].format(table=table)
