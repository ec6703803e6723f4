"""Tests for raw record decoding."""

from __future__ import annotations

import struct

import pytest

from conftest import mapping_bytes, ohlcv_bytes, other_bytes, trade_bytes
from livetape.livedata.base import DecodeError
from livetape.livedata.records import (
    CandleRecord,
    OtherRecord,
    RType,
    SymbolMappingRecord,
    TradeRecord,
    decode_header,
    decode_record,
)

TS = 1_700_000_000_000_500_000


def test_decode_trade():
    raw = trade_bytes(42, 100_250_000_000, 10, TS, publisher_id=1, sequence=99)

    record = decode_record(raw)

    assert isinstance(record, TradeRecord)
    assert record.instrument_id == 42
    assert record.publisher_id == 1
    assert record.ts_event == TS
    assert record.price == 100_250_000_000
    assert record.size == 10
    assert record.action == "T"
    assert record.sequence == 99


def test_decode_one_minute_bar():
    raw = ohlcv_bytes(7, 1_000_000_000, 2_000_000_000, 500_000_000, 1_500_000_000, 300, TS)

    record = decode_record(raw)

    assert isinstance(record, CandleRecord)
    assert record.is_one_minute
    assert (record.open, record.high, record.low, record.close) == (
        1_000_000_000,
        2_000_000_000,
        500_000_000,
        1_500_000_000,
    )
    assert record.volume == 300


def test_decode_hourly_bar_is_not_one_minute():
    record = decode_record(ohlcv_bytes(7, 1, 1, 1, 1, 1, TS, rtype=RType.OHLCV_1H))
    assert isinstance(record, CandleRecord)
    assert not record.is_one_minute


def test_decode_symbol_mapping_strips_padding():
    record = decode_record(mapping_bytes(7, "AAPL"))

    assert isinstance(record, SymbolMappingRecord)
    assert record.instrument_id == 7
    assert record.stype_in_symbol == "AAPL"
    assert record.stype_out_symbol == "AAPL"


def test_decode_legacy_symbol_mapping():
    """80-byte mappings from older encodings carry 22-byte symbols."""
    header = struct.pack("<BBHIQ", 80 // 4, RType.SYMBOL_MAPPING, 0, 9, TS)
    body = struct.pack("<22s22s4xQQ", b"MSFT", b"MSFT", 0, 0)

    record = decode_record(header + body)

    assert isinstance(record, SymbolMappingRecord)
    assert record.instrument_id == 9
    assert record.stype_out_symbol == "MSFT"


def test_uninteresting_type_passes_through():
    record = decode_record(other_bytes(RType.STATUS, instrument_id=3))

    assert isinstance(record, OtherRecord)
    assert record.rtype_name == "STATUS"
    assert record.instrument_id == 3


def test_unknown_rtype_is_not_an_error():
    record = decode_record(other_bytes(0x7F))

    assert isinstance(record, OtherRecord)
    assert record.rtype_name == "UNKNOWN_0x7f"


def test_header_length_mismatch_raises():
    raw = trade_bytes(42, 1, 1, TS)
    with pytest.raises(DecodeError, match="length mismatch"):
        decode_header(raw[:-4])


def test_truncated_record_raises():
    with pytest.raises(DecodeError, match="too short"):
        decode_record(b"\x0c\x00\x01")


def test_body_shorter_than_layout_raises():
    # A header that claims to be a whole 16-byte trade record
    raw = struct.pack("<BBHIQ", 16 // 4, RType.MBP_0, 1, 42, TS)
    with pytest.raises(DecodeError, match="Trade record too short"):
        decode_record(raw)
