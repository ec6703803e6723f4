"""Converts decoded feed records to canonical relational rows."""

from __future__ import annotations

from decimal import Decimal

from livetape.livedata.records import CandleRecord, TradeRecord
from livetape.processing.schemas import CandleRow, TradeRow
from livetape.utils.dates import split_timestamp, utc_date

# Prices on the wire are signed integers in units of 1e-9
FIXED_PRICE_SCALE = Decimal(1_000_000_000)

# Matches the DECIMAL(19,3) price columns
PRICE_QUANTUM = Decimal("0.001")


def fixed_to_decimal(value: int) -> Decimal:
    """Convert a 1e-9 fixed-point price to a Decimal with the column's precision."""
    return (Decimal(value) / FIXED_PRICE_SCALE).quantize(PRICE_QUANTUM)


def normalize_trade(record: TradeRecord, ticker: str) -> TradeRow:
    seconds, nanos = split_timestamp(record.ts_event)
    return TradeRow(
        date=utc_date(seconds),
        timestamp=seconds,
        nanos=nanos,
        publisher=record.publisher_id,
        ticker=ticker,
        price=fixed_to_decimal(record.price),
        shares=record.size,
    )


def normalize_candle(record: CandleRecord, ticker: str) -> CandleRow:
    """Normalize an OHLCV bar; the timestamp is the bar's open time."""
    seconds, nanos = split_timestamp(record.ts_event)
    return CandleRow(
        date=utc_date(seconds),
        timestamp=seconds,
        nanos=nanos,
        publisher=record.publisher_id,
        ticker=ticker,
        volume=record.volume,
        open=fixed_to_decimal(record.open),
        high=fixed_to_decimal(record.high),
        low=fixed_to_decimal(record.low),
        close=fixed_to_decimal(record.close),
    )
