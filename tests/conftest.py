"""Shared test fixtures."""

from __future__ import annotations

import datetime
import struct
from pathlib import Path
from typing import Generator, Iterator

import pytest
from pydantic import SecretStr

from livetape.config.settings import LiveSettings
from livetape.livedata.base import MappingInterval, SessionMetadata, SubscriptionRequest
from livetape.storage.duckdb_manager import DuckDBManager
from livetape.utils.logging import setup_logging

# 2023-11-14T22:13:20Z
SESSION_START_NS = 1_700_000_000 * 1_000_000_000
SESSION_END_NS = SESSION_START_NS + 3_600 * 1_000_000_000

METADATA_RAW = b"DBN\x02" + (16).to_bytes(4, "little") + b"TEST\0" + bytes(11)


@pytest.fixture(autouse=True)
def _stderr_logging() -> None:
    """Route structlog through stdlib logging on stderr; stdout can carry archive bytes."""
    setup_logging("DEBUG")


def _header(length: int, rtype: int, publisher_id: int, instrument_id: int, ts_event: int) -> bytes:
    return struct.pack("<BBHIQ", length // 4, rtype, publisher_id, instrument_id, ts_event)


def trade_bytes(
    instrument_id: int,
    price: int,
    size: int,
    ts_event: int,
    publisher_id: int = 1,
    sequence: int = 0,
) -> bytes:
    """Raw 48-byte trade record; `price` is fixed-point 1e-9."""
    body = struct.pack("<qIccBBQiI", price, size, b"T", b"B", 0, 0, ts_event, 0, sequence)
    return _header(48, 0x00, publisher_id, instrument_id, ts_event) + body


def ohlcv_bytes(
    instrument_id: int,
    open_: int,
    high: int,
    low: int,
    close: int,
    volume: int,
    ts_event: int,
    publisher_id: int = 1,
    rtype: int = 0x21,
) -> bytes:
    body = struct.pack("<qqqqQ", open_, high, low, close, volume)
    return _header(56, rtype, publisher_id, instrument_id, ts_event) + body


def mapping_bytes(instrument_id: int, symbol: str, ts_event: int = SESSION_START_NS) -> bytes:
    body = struct.pack("<B71sB71sQQ", 1, symbol.encode(), 1, symbol.encode(), 0, 0)
    return _header(176, 0x16, 0, instrument_id, ts_event) + body


def other_bytes(rtype: int, instrument_id: int = 0, ts_event: int = SESSION_START_NS) -> bytes:
    return _header(32, rtype, 1, instrument_id, ts_event) + bytes(16)


class FakeFeed:
    """In-memory FeedClient that replays a fixed list of raw records."""

    source_name = "fake"

    def __init__(
        self,
        records: list[bytes],
        metadata: SessionMetadata,
        fail_on: str | None = None,
    ) -> None:
        self._records = records
        self._metadata = metadata
        self._fail_on = fail_on
        self.calls: list[str] = []
        self.subscriptions: list[SubscriptionRequest] = []
        self.consumed = 0
        self.stop_calls = 0

    def _step(self, name: str) -> None:
        self.calls.append(name)
        if self._fail_on == name:
            raise ConnectionError(f"{name} refused")

    def connect(self) -> None:
        self._step("connect")

    def subscribe(self, request: SubscriptionRequest) -> None:
        self._step("subscribe")
        self.subscriptions.append(request)

    def start(self) -> None:
        self._step("start")

    def metadata(self) -> SessionMetadata:
        self._step("metadata")
        return self._metadata

    def records(self) -> Iterator[bytes]:
        for raw in self._records:
            self.consumed += 1
            yield raw

    def stop(self) -> None:
        self.stop_calls += 1


@pytest.fixture
def session_metadata() -> SessionMetadata:
    """Metadata binding instrument 7 to AAPL and 42 to XYZ for the session day."""
    day = datetime.date(2023, 11, 14)
    return SessionMetadata(
        raw=METADATA_RAW,
        dataset="TEST",
        start=SESSION_START_NS,
        end=SESSION_END_NS,
        schema="trades",
        mappings=[
            MappingInterval(7, "AAPL", day, day + datetime.timedelta(days=1)),
            MappingInterval(42, "XYZ", day, day + datetime.timedelta(days=1)),
        ],
    )


@pytest.fixture
def db(tmp_path: Path) -> Generator[DuckDBManager, None, None]:
    """A connected, migrated DuckDB database in a temp directory."""
    manager = DuckDBManager(tmp_path / "test.duckdb")
    with manager.connect():
        manager.migrate()
        yield manager


@pytest.fixture
def live_settings(tmp_path: Path) -> LiveSettings:
    return LiveSettings(
        api_key=SecretStr("db-test-key"),
        dataset="TEST",
        schemas=["trades"],
        symbols=["XYZ"],
        out=str(tmp_path / "archive" / "session.dbn"),
    )
