"""Canonical relational row types for trades and one-minute candles."""

from __future__ import annotations

import datetime
from dataclasses import astuple, dataclass
from decimal import Decimal

import polars as pl


@dataclass(frozen=True)
class TradeRow:
    date: datetime.date
    timestamp: int  # UNIX seconds
    nanos: int
    publisher: int
    ticker: str
    price: Decimal
    shares: int

    @property
    def natural_key(self) -> tuple[int, str, int]:
        return (self.publisher, self.ticker, self.timestamp)

    def as_params(self) -> tuple:
        return astuple(self)


@dataclass(frozen=True)
class CandleRow:
    date: datetime.date
    timestamp: int
    nanos: int
    publisher: int
    ticker: str
    volume: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal

    @property
    def natural_key(self) -> tuple[int, str, int]:
        return (self.publisher, self.ticker, self.timestamp)

    def as_params(self) -> tuple:
        return astuple(self)


# Column order matches the dataclass field order above.
TRADE_COLUMNS = ["date", "timestamp", "nanos", "publisher", "ticker", "price", "shares"]
CANDLE_COLUMNS = [
    "date",
    "timestamp",
    "nanos",
    "publisher",
    "ticker",
    "volume",
    "open",
    "high",
    "low",
    "close",
]

# Shapes of query results handed to the reporting layer (prices as floats).
TRADE_QUERY_SCHEMA = {
    "timestamp": pl.Int64,
    "nanos": pl.Int32,
    "publisher": pl.Int32,
    "ticker": pl.Utf8,
    "price": pl.Float64,
    "shares": pl.Int64,
}

CANDLE_QUERY_SCHEMA = {
    "timestamp": pl.Int64,
    "nanos": pl.Int32,
    "publisher": pl.Int32,
    "ticker": pl.Utf8,
    "volume": pl.Int64,
    "open": pl.Float64,
    "high": pl.Float64,
    "low": pl.Float64,
    "close": pl.Float64,
}
