"""Routes decoded records to the resolver and the persistence writer."""

from __future__ import annotations

from enum import Enum

from livetape.livedata.records import (
    CandleRecord,
    OtherRecord,
    Record,
    SymbolMappingRecord,
    TradeRecord,
)
from livetape.livedata.symbols import SymbolResolver
from livetape.storage.writer import PersistenceWriter
from livetape.utils.logging import get_logger

logger = get_logger(__name__)


class DispatchOutcome(str, Enum):
    TRADE_WRITTEN = "trade_written"
    CANDLE_WRITTEN = "candle_written"
    DUPLICATE = "duplicate"
    MAPPING_APPLIED = "mapping_applied"
    SKIPPED_UNRESOLVED = "skipped_unresolved"
    IGNORED = "ignored"


def _resolve_or_skip(resolver: SymbolResolver, record: TradeRecord | CandleRecord) -> str | None:
    ticker = resolver.resolve(record.instrument_id)
    if ticker is None:
        logger.warning(
            "record_skipped_unresolved",
            kind=type(record).__name__,
            instrument_id=record.instrument_id,
            ts_event=record.ts_event,
        )
    return ticker


def dispatch(
    record: Record,
    resolver: SymbolResolver,
    writer: PersistenceWriter,
) -> DispatchOutcome:
    """Apply one record's side effects synchronously.

    Persistence errors propagate to the caller.
    """
    match record:
        case TradeRecord():
            ticker = _resolve_or_skip(resolver, record)
            if ticker is None:
                return DispatchOutcome.SKIPPED_UNRESOLVED
            if writer.upsert_trade(record, ticker):
                return DispatchOutcome.TRADE_WRITTEN
            return DispatchOutcome.DUPLICATE

        case CandleRecord(is_one_minute=True):
            ticker = _resolve_or_skip(resolver, record)
            if ticker is None:
                return DispatchOutcome.SKIPPED_UNRESOLVED
            if writer.upsert_candle(record, ticker):
                return DispatchOutcome.CANDLE_WRITTEN
            return DispatchOutcome.DUPLICATE

        case SymbolMappingRecord():
            resolver.apply_mapping_update(record)
            return DispatchOutcome.MAPPING_APPLIED

        case CandleRecord() | OtherRecord():
            return DispatchOutcome.IGNORED

    raise TypeError(f"Not a record variant: {record!r}")
