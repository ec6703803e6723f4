"""Databento Live feed adapter.

Wraps `databento.Live` behind the FeedClient protocol. Records leave this
module as raw DBN bytes; all decoding happens in `livetape.livedata.records`.
"""

from __future__ import annotations

import datetime
from typing import Any, Iterator

from livetape.config.settings import LiveSettings
from livetape.livedata.base import (
    MappingInterval,
    SessionMetadata,
    SetupError,
    SubscriptionRequest,
)
from livetape.utils.dates import UNDEF_TIMESTAMP
from livetape.utils.logging import get_logger

logger = get_logger(__name__)


def _to_date(value: Any) -> datetime.date:
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value))


def _mapping_intervals(mappings: dict[str, list[dict[str, Any]]]) -> list[MappingInterval]:
    """Flatten DBN metadata mappings (raw symbol -> intervals of instrument ids)."""
    intervals = []
    for raw_symbol, entries in mappings.items():
        for entry in entries:
            symbol = str(entry.get("symbol", ""))
            if not symbol.isdigit():
                continue
            intervals.append(
                MappingInterval(
                    instrument_id=int(symbol),
                    ticker=raw_symbol,
                    start_date=_to_date(entry["start_date"]),
                    end_date=_to_date(entry["end_date"]),
                )
            )
    return intervals


class DatabentoFeed:
    """Streams DBN records from the Databento Live gateway."""

    source_name = "databento"

    def __init__(self, settings: LiveSettings) -> None:
        self._api_key = settings.api_key.get_secret_value()
        self._dataset = settings.dataset
        self._client = None
        self._iterator: Iterator[Any] | None = None
        self._pending: Any = None
        self._subscriptions = 0
        self._stopped = False

    def connect(self) -> None:
        """Create the Live client. The gateway authenticates on the first subscription."""
        if not self._api_key:
            raise SetupError("Databento API key not configured (use --key or set DATABENTO_API_KEY)")
        if not self._dataset:
            raise SetupError("No dataset configured (use --dataset or set LIVE_DATASET)")

        import databento as db

        self._client = db.Live(key=self._api_key, ts_out=False)
        logger.debug("databento_client_created", dataset=self._dataset)

    def subscribe(self, request: SubscriptionRequest) -> None:
        self._require_client().subscribe(
            dataset=self._dataset,
            schema=request.schema,
            stype_in=request.stype_in,
            symbols=request.symbols,
            start=request.start,
            snapshot=request.snapshot,
        )
        self._subscriptions += 1

    def start(self) -> None:
        """Start the session by creating the record iterator.

        `databento.Live` starts streaming when iteration begins and rejects an
        explicit `start()` beforehand. The gateway also refuses a session with
        no subscriptions.
        """
        client = self._require_client()
        if not self._subscriptions:
            raise SetupError("No subscriptions to start (pass at least one symbol)")
        self._iterator = iter(client)

    def metadata(self) -> SessionMetadata:
        """Block until the first record arrives, by which point the header has been read."""
        client = self._require_client()
        if self._pending is None and self._iterator is not None:
            self._pending = next(self._iterator, None)

        meta = client.metadata
        if meta is None:
            raise SetupError("Stream ended before the metadata header was received")

        end = meta.end if meta.end not in (None, UNDEF_TIMESTAMP) else None
        return SessionMetadata(
            raw=bytes(meta.encode()),
            dataset=meta.dataset,
            start=int(meta.start),
            end=int(end) if end is not None else None,
            schema=str(meta.schema) if meta.schema is not None else None,
            mappings=_mapping_intervals(meta.mappings or {}),
        )

    def records(self) -> Iterator[bytes]:
        if self._iterator is None:
            return
        if self._pending is not None:
            pending, self._pending = self._pending, None
            yield bytes(pending)
        for record in self._iterator:
            yield bytes(record)

    def stop(self) -> None:
        if self._client is None or self._stopped:
            return
        self._stopped = True
        self._client.stop()

    def _require_client(self):
        if self._client is None:
            raise SetupError("Databento client is not connected")
        return self._client
