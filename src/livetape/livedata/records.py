"""Decoding of raw feed records into a closed set of typed variants.

Every record starts with a 16-byte little-endian header:

    length (u8, in 4-byte words) | rtype (u8) | publisher_id (u16)
    | instrument_id (u32) | ts_event (u64, UNIX ns)

Only the bodies the dispatcher acts on are decoded (trades, OHLCV bars,
symbol mappings). Everything else becomes an `OtherRecord` and is passed
through untouched.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Union

from livetape.livedata.base import DecodeError


class RType(IntEnum):
    """Record type tags of the upstream feed."""

    MBP_0 = 0x00  # trades
    MBP_1 = 0x01
    MBP_10 = 0x0A
    OHLCV_DEPRECATED = 0x11
    STATUS = 0x12
    INSTRUMENT_DEF = 0x13
    IMBALANCE = 0x14
    ERROR = 0x15
    SYMBOL_MAPPING = 0x16
    SYSTEM = 0x17
    STATISTICS = 0x18
    OHLCV_1S = 0x20
    OHLCV_1M = 0x21
    OHLCV_1H = 0x22
    OHLCV_1D = 0x23
    OHLCV_EOD = 0x24
    MBO = 0xA0
    CMBP_1 = 0xB1
    CBBO_1S = 0xC0
    CBBO_1M = 0xC1
    TCBBO = 0xC2
    BBO_1S = 0xC3
    BBO_1M = 0xC4


OHLCV_RTYPES = frozenset(
    {
        RType.OHLCV_DEPRECATED,
        RType.OHLCV_1S,
        RType.OHLCV_1M,
        RType.OHLCV_1H,
        RType.OHLCV_1D,
        RType.OHLCV_EOD,
    }
)

_HEADER = struct.Struct("<BBHIQ")
_TRADE_BODY = struct.Struct("<qIccBBQiI")
_OHLCV_BODY = struct.Struct("<qqqqQ")
_MAPPING_BODY = struct.Struct("<B71sB71sQQ")
# Pre-v2 symbol mappings carried 22-byte symbols and no stype fields
_MAPPING_BODY_V1 = struct.Struct("<22s22s4xQQ")

HEADER_SIZE = _HEADER.size


@dataclass(frozen=True)
class RecordHeader:
    length: int  # bytes
    rtype: int
    publisher_id: int
    instrument_id: int
    ts_event: int


@dataclass(frozen=True)
class TradeRecord:
    publisher_id: int
    instrument_id: int
    ts_event: int
    price: int  # fixed-point, 1e-9 units
    size: int
    action: str
    side: str
    sequence: int


@dataclass(frozen=True)
class CandleRecord:
    rtype: int
    publisher_id: int
    instrument_id: int
    ts_event: int
    open: int  # fixed-point, 1e-9 units
    high: int
    low: int
    close: int
    volume: int

    @property
    def is_one_minute(self) -> bool:
        return self.rtype == RType.OHLCV_1M


@dataclass(frozen=True)
class SymbolMappingRecord:
    publisher_id: int
    instrument_id: int
    ts_event: int
    stype_in_symbol: str
    stype_out_symbol: str
    start_ts: int
    end_ts: int


@dataclass(frozen=True)
class OtherRecord:
    """Any record type the dispatcher does not act on."""

    rtype: int
    publisher_id: int
    instrument_id: int
    ts_event: int

    @property
    def rtype_name(self) -> str:
        try:
            return RType(self.rtype).name
        except ValueError:
            return f"UNKNOWN_{self.rtype:#04x}"


Record = Union[TradeRecord, CandleRecord, SymbolMappingRecord, OtherRecord]


def decode_header(raw: bytes) -> RecordHeader:
    """Decode and validate the common record header against the span length."""
    if len(raw) < HEADER_SIZE:
        raise DecodeError(f"Record too short for header: {len(raw)} bytes")

    length_words, rtype, publisher_id, instrument_id, ts_event = _HEADER.unpack_from(raw)
    length = length_words * 4
    if length != len(raw):
        raise DecodeError(
            f"Record length mismatch for rtype {rtype:#04x}: "
            f"header says {length} bytes, got {len(raw)}"
        )

    return RecordHeader(
        length=length,
        rtype=rtype,
        publisher_id=publisher_id,
        instrument_id=instrument_id,
        ts_event=ts_event,
    )


def _c_string(raw: bytes) -> str:
    try:
        return raw.split(b"\0", 1)[0].decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Invalid symbol bytes: {raw!r}") from e


def _unpack_body(body: struct.Struct, raw: bytes, what: str) -> tuple:
    if len(raw) < HEADER_SIZE + body.size:
        raise DecodeError(f"{what} record too short: {len(raw)} bytes")
    return body.unpack_from(raw, HEADER_SIZE)


def _decode_trade(hd: RecordHeader, raw: bytes) -> TradeRecord:
    price, size, action, side, _flags, _depth, _ts_recv, _ts_in_delta, sequence = _unpack_body(
        _TRADE_BODY, raw, "Trade"
    )
    return TradeRecord(
        publisher_id=hd.publisher_id,
        instrument_id=hd.instrument_id,
        ts_event=hd.ts_event,
        price=price,
        size=size,
        action=action.decode("ascii", errors="replace"),
        side=side.decode("ascii", errors="replace"),
        sequence=sequence,
    )


def _decode_ohlcv(hd: RecordHeader, raw: bytes) -> CandleRecord:
    open_, high, low, close, volume = _unpack_body(_OHLCV_BODY, raw, "OHLCV")
    return CandleRecord(
        rtype=hd.rtype,
        publisher_id=hd.publisher_id,
        instrument_id=hd.instrument_id,
        ts_event=hd.ts_event,
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


def _decode_symbol_mapping(hd: RecordHeader, raw: bytes) -> SymbolMappingRecord:
    if hd.length == HEADER_SIZE + _MAPPING_BODY_V1.size:
        in_sym, out_sym, start_ts, end_ts = _unpack_body(_MAPPING_BODY_V1, raw, "SymbolMapping")
    else:
        _stype_in, in_sym, _stype_out, out_sym, start_ts, end_ts = _unpack_body(
            _MAPPING_BODY, raw, "SymbolMapping"
        )

    return SymbolMappingRecord(
        publisher_id=hd.publisher_id,
        instrument_id=hd.instrument_id,
        ts_event=hd.ts_event,
        stype_in_symbol=_c_string(in_sym),
        stype_out_symbol=_c_string(out_sym),
        start_ts=start_ts,
        end_ts=end_ts,
    )


_DECODERS: dict[int, Callable[[RecordHeader, bytes], Record]] = {
    RType.MBP_0: _decode_trade,
    RType.SYMBOL_MAPPING: _decode_symbol_mapping,
    **{rtype: _decode_ohlcv for rtype in OHLCV_RTYPES},
}


def decode_record(raw: bytes) -> Record:
    """Decode one raw record into its typed variant.

    Raises DecodeError when the span is malformed. Unknown rtypes are not an
    error; they decode to OtherRecord.
    """
    hd = decode_header(raw)
    decoder = _DECODERS.get(hd.rtype)
    if decoder is None:
        return OtherRecord(
            rtype=hd.rtype,
            publisher_id=hd.publisher_id,
            instrument_id=hd.instrument_id,
            ts_event=hd.ts_event,
        )
    return decoder(hd, raw)
