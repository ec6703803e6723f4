"""Idempotent persistence of normalized trades and candles."""

from __future__ import annotations

import duckdb

from livetape.livedata.base import PersistenceError
from livetape.livedata.records import CandleRecord, TradeRecord
from livetape.processing.normalizer import normalize_candle, normalize_trade
from livetape.processing.schemas import CANDLE_COLUMNS, TRADE_COLUMNS
from livetape.storage.duckdb_manager import DuckDBManager
from livetape.storage.migrations import CANDLES_TABLE, TRADES_TABLE
from livetape.utils.logging import get_logger

logger = get_logger(__name__)


def _upsert_sql(table: str, columns: list[str]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        "ON CONFLICT DO NOTHING"
    )


class PersistenceWriter:
    """Writes rows with upsert-ignore semantics on (publisher, ticker, timestamp).

    Re-delivering an already stored record is a no-op, not an error.
    """

    def __init__(
        self,
        db: DuckDBManager,
        trades_table: str = TRADES_TABLE,
        candles_table: str = CANDLES_TABLE,
    ) -> None:
        self._cursor = db.cursor()
        self._trade_sql = _upsert_sql(trades_table, TRADE_COLUMNS)
        self._candle_sql = _upsert_sql(candles_table, CANDLE_COLUMNS)

    def upsert_trade(self, record: TradeRecord, ticker: str) -> bool:
        """Insert a trade row. Returns False when the natural key already existed."""
        row = normalize_trade(record, ticker)
        return self._execute(self._trade_sql, row.as_params(), "trade", row.natural_key)

    def upsert_candle(self, record: CandleRecord, ticker: str) -> bool:
        """Insert a one-minute candle row. Returns False on a duplicate key."""
        row = normalize_candle(record, ticker)
        return self._execute(self._candle_sql, row.as_params(), "candle", row.natural_key)

    def close(self) -> None:
        self._cursor.close()

    def _execute(self, sql: str, params: tuple, kind: str, key: tuple) -> bool:
        try:
            result = self._cursor.execute(sql, list(params)).fetchone()
        except duckdb.Error as e:
            raise PersistenceError(f"Failed to upsert {kind} {key}: {e}") from e

        inserted = bool(result and result[0])
        if not inserted:
            logger.debug("duplicate_ignored", kind=kind, key=key)
        return inserted
