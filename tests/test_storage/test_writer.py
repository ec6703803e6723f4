"""Tests for idempotent trade and candle persistence."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from conftest import SESSION_START_NS, ohlcv_bytes, trade_bytes
from livetape.livedata.base import PersistenceError
from livetape.livedata.records import decode_record
from livetape.storage.duckdb_manager import DuckDBManager
from livetape.storage.writer import PersistenceWriter

NS = 1_000_000_000


@pytest.fixture
def writer(db: DuckDBManager):
    w = PersistenceWriter(db)
    yield w
    w.close()


def test_upsert_trade_inserts_normalized_row(db: DuckDBManager, writer: PersistenceWriter):
    record = decode_record(trade_bytes(42, 100_250_000_000, 10, SESSION_START_NS + 500_000))

    assert writer.upsert_trade(record, "XYZ") is True

    rows = db.execute("SELECT * FROM trades").fetchall()
    assert rows == [
        (datetime.date(2023, 11, 14), 1_700_000_000, 500_000, 1, "XYZ", Decimal("100.250"), 10)
    ]


def test_redelivered_trade_is_ignored(db: DuckDBManager, writer: PersistenceWriter):
    first = decode_record(trade_bytes(42, 100 * NS, 10, SESSION_START_NS))
    # Same second, different sub-second part and price: same natural key
    again = decode_record(trade_bytes(42, 101 * NS, 3, SESSION_START_NS + 7))

    assert writer.upsert_trade(first, "XYZ") is True
    assert writer.upsert_trade(first, "XYZ") is False
    assert writer.upsert_trade(again, "XYZ") is False

    rows = db.execute("SELECT price, shares FROM trades").fetchall()
    assert rows == [(Decimal("100.000"), 10)]


def test_natural_key_includes_publisher_and_ticker(db: DuckDBManager, writer: PersistenceWriter):
    writer.upsert_trade(decode_record(trade_bytes(42, NS, 1, SESSION_START_NS, publisher_id=1)), "XYZ")
    writer.upsert_trade(decode_record(trade_bytes(42, NS, 1, SESSION_START_NS, publisher_id=2)), "XYZ")
    writer.upsert_trade(decode_record(trade_bytes(7, NS, 1, SESSION_START_NS, publisher_id=1)), "AAPL")

    assert db.execute("SELECT COUNT(*) FROM trades").fetchone()[0] == 3


def test_upsert_candle(db: DuckDBManager, writer: PersistenceWriter):
    raw = ohlcv_bytes(42, 10_500_000_000, 11 * NS, 9_999_000_000, 10 * NS, 1_000, SESSION_START_NS)
    record = decode_record(raw)

    assert writer.upsert_candle(record, "XYZ") is True
    assert writer.upsert_candle(record, "XYZ") is False

    row = db.execute("SELECT ticker, volume, open, high, low, close FROM candles").fetchone()
    assert row == ("XYZ", 1_000, Decimal("10.5"), Decimal("11"), Decimal("9.999"), Decimal("10"))


def test_database_error_becomes_persistence_error(db: DuckDBManager, writer: PersistenceWriter):
    db.execute("DROP TABLE candles")
    record = decode_record(ohlcv_bytes(42, NS, NS, NS, NS, 1, SESSION_START_NS))

    with pytest.raises(PersistenceError, match="Failed to upsert candle"):
        writer.upsert_candle(record, "XYZ")
