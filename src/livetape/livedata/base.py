"""Feed client Protocol, session metadata types, and the live-data error hierarchy."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Iterator, Protocol, runtime_checkable


class LiveDataError(Exception):
    """Base exception for all live ingestion failures."""


class SetupError(LiveDataError):
    """Connect, authenticate, subscribe, start or migration failed."""


class DecodeError(LiveDataError):
    """A record could not be decoded."""


class PersistenceError(LiveDataError):
    """The store rejected a write."""


class ArchivalError(LiveDataError):
    """Writing to the archive sink failed."""


class LifecycleError(LiveDataError):
    """A session operation was called in the wrong state."""


@dataclass(frozen=True)
class SubscriptionRequest:
    """One subscription sent to the upstream feed per configured schema."""

    schema: str
    symbols: list[str]
    stype_in: str = "raw_symbol"
    start: datetime.datetime | None = None  # None means "now"
    snapshot: bool = False


@dataclass(frozen=True)
class MappingInterval:
    """A symbology binding valid for [start_date, end_date)."""

    instrument_id: int
    ticker: str
    start_date: datetime.date
    end_date: datetime.date

    def covers(self, day: datetime.date) -> bool:
        return self.start_date <= day < self.end_date


@dataclass(frozen=True)
class SessionMetadata:
    """The stream-opening metadata header.

    `raw` is the header exactly as received; it is what gets archived.
    `start` and `end` are UNIX nanoseconds; a live stream may have no end.
    """

    raw: bytes
    dataset: str
    start: int
    end: int | None = None
    schema: str | None = None
    mappings: list[MappingInterval] = field(default_factory=list)


@runtime_checkable
class FeedClient(Protocol):
    """Contract for an upstream real-time feed.

    Methods are called in order: connect, subscribe (zero or more times),
    start, metadata, records. `stop` may be called from any thread at any
    time and must be idempotent.
    """

    @property
    def source_name(self) -> str:
        """Short identifier for this feed, e.g. 'databento'."""
        ...

    def connect(self) -> None:
        """Open the connection and authenticate. Blocks."""
        ...

    def subscribe(self, request: SubscriptionRequest) -> None:
        """Send a subscription request. Blocks."""
        ...

    def start(self) -> None:
        """Ask the gateway to begin streaming."""
        ...

    def metadata(self) -> SessionMetadata:
        """Return the session metadata header. Blocks until it has arrived."""
        ...

    def records(self) -> Iterator[bytes]:
        """Yield the raw bytes of each record in arrival order until the stream ends."""
        ...

    def stop(self) -> None:
        """Stop streaming. A blocked `records` iteration should then end."""
        ...
