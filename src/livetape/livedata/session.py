"""Live session lifecycle and the single-threaded ingestion loop."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

import structlog

from livetape.config.settings import LiveSettings
from livetape.livedata.archive import ArchiveSink, open_archive
from livetape.livedata.base import (
    ArchivalError,
    DecodeError,
    FeedClient,
    LifecycleError,
    LiveDataError,
    SetupError,
    SubscriptionRequest,
)
from livetape.livedata.dispatch import DispatchOutcome, dispatch
from livetape.livedata.records import decode_record
from livetape.livedata.symbols import SymbolResolver
from livetape.storage.duckdb_manager import DuckDBManager
from livetape.storage.writer import PersistenceWriter
from livetape.utils.dates import parse_iso8601
from livetape.utils.logging import get_logger

logger = get_logger(__name__)


class SessionState(str, Enum):
    CREATED = "created"
    AUTHENTICATING = "authenticating"
    SUBSCRIBING = "subscribing"
    STARTED = "started"
    STREAMING = "streaming"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class SessionStats:
    records: int = 0
    outcomes: Counter = field(default_factory=Counter)

    def count(self, outcome: DispatchOutcome) -> None:
        self.records += 1
        self.outcomes[outcome.value] += 1


def subscription_requests(settings: LiveSettings) -> list[SubscriptionRequest]:
    """One request per configured schema; none when no symbols are configured."""
    if not settings.symbols:
        return []

    start = parse_iso8601(settings.start)
    return [
        SubscriptionRequest(
            schema=schema,
            symbols=list(settings.symbols),
            stype_in=settings.stype_in,
            start=start,
            snapshot=settings.snapshot,
        )
        for schema in settings.schemas
    ]


class LiveSession:
    """One connection to the feed, from setup until the stream ends or is stopped.

    The session owns its resolver and archive sink. The DuckDB manager is
    shared with readers; the session only holds its own cursor on it.
    A session streams at most once.
    """

    def __init__(self, feed: FeedClient, db: DuckDBManager, sink: ArchiveSink) -> None:
        self._feed = feed
        self._db = db
        self._sink = sink
        self._resolver = SymbolResolver()
        self._writer: PersistenceWriter | None = None
        self._state = SessionState.CREATED
        self._lock = threading.RLock()
        self._stop_requested = threading.Event()
        self._streamed = False

    @classmethod
    def open(cls, settings: LiveSettings, feed: FeedClient, db: DuckDBManager) -> LiveSession:
        """Open the archive, then connect, subscribe, migrate and start the feed.

        The archive is opened before connecting and is closed again if any
        later step fails. Raises SetupError.
        """
        try:
            requests = subscription_requests(settings)
            sink = open_archive(settings.out)
        except (LiveDataError, ValueError) as e:
            raise SetupError(f"Failed to prepare session: {e}") from e

        session = cls(feed, db, sink)
        try:
            session._setup(requests)
        except SetupError:
            session._release(failing=True)
            raise
        return session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def resolver(self) -> SymbolResolver:
        return self._resolver

    def follow_stream(self) -> SessionStats:
        """Run the ingestion loop until end of stream, stop(), or a fatal error.

        Raises LifecycleError if the session already streamed or was stopped.
        Any error raised from the loop stops the session first.
        """
        with self._lock:
            if self._streamed:
                raise LifecycleError(f"Session already started (state: {self._state.value})")
            if self._state is not SessionState.STARTED:
                raise LifecycleError(f"Session cannot stream from state {self._state.value}")
            self._streamed = True
            self._state = SessionState.STREAMING

        stats = SessionStats()
        with structlog.contextvars.bound_contextvars(feed=self._feed.source_name):
            try:
                self._stream(stats)
            except BaseException as e:
                if isinstance(e, LiveDataError):
                    logger.error("session_failed", error=str(e), records=stats.records)
                self._finish(failing=True)
                raise
            self._finish()

            logger.info("session_finished", records=stats.records, **stats.outcomes)
        return stats

    def stop(self) -> None:
        """Request a cooperative stop.

        The record being processed completes; the loop exits before pulling
        the next one. Calling stop() again, or on a stopped session, does nothing.
        """
        with self._lock:
            if self._state in (SessionState.STOPPED, SessionState.STOPPING):
                return
            self._stop_requested.set()

            if self._state is not SessionState.STREAMING:
                logger.warning("session_stopped_before_streaming", state=self._state.value)
                self._release()
                return

            self._state = SessionState.STOPPING

        logger.info("session_stop_requested")
        # Unblocks a receive that is waiting on the network
        self._feed.stop()

    def _setup(self, requests: list[SubscriptionRequest]) -> None:
        self._state = SessionState.AUTHENTICATING
        try:
            self._feed.connect()
        except Exception as e:
            raise SetupError(f"Failed to connect to {self._feed.source_name}: {e}") from e

        self._state = SessionState.SUBSCRIBING
        for request in requests:
            try:
                self._feed.subscribe(request)
            except Exception as e:
                raise SetupError(f"Failed to subscribe to {request.schema}: {e}") from e
            logger.info("subscribed", schema=request.schema, symbols=len(request.symbols))

        try:
            self._db.migrate()
            self._writer = PersistenceWriter(self._db)
        except Exception as e:
            raise SetupError(f"Failed to migrate database: {e}") from e

        try:
            self._feed.start()
        except Exception as e:
            raise SetupError(f"Failed to start {self._feed.source_name}: {e}") from e

        self._state = SessionState.STARTED
        logger.info("session_started", archive=self._sink.destination)

    def _stream(self, stats: SessionStats) -> None:
        try:
            metadata = self._feed.metadata()
        except LiveDataError:
            raise
        except Exception as e:
            raise DecodeError(f"Failed to read session metadata: {e}") from e

        self._sink.write_header(metadata)
        self._resolver.initialize(metadata)
        logger.info("metadata_received", dataset=metadata.dataset, bindings=len(self._resolver))

        records = iter(self._feed.records())
        while not self._stop_requested.is_set():
            try:
                raw = next(records, None)
            except Exception as e:
                raise LiveDataError(f"Feed failed while streaming: {e}") from e
            if raw is None:
                break

            outcome = dispatch(decode_record(raw), self._resolver, self._writer)
            self._sink.append(raw)
            stats.count(outcome)

    def _finish(self, failing: bool = False) -> None:
        with self._lock:
            self._state = SessionState.STOPPING
            self._release(failing)

    def _release(self, failing: bool = False) -> None:
        """Close everything the session holds and mark it stopped.

        When `failing`, the caller is already propagating an error, so a
        failure to close the archive is logged instead of replacing it.
        """
        try:
            if self._writer is not None:
                self._writer.close()
                self._writer = None
            try:
                self._feed.stop()
            except Exception:
                logger.exception("feed_stop_failed")
            try:
                self._sink.close()
            except ArchivalError:
                if not failing:
                    raise
                logger.exception("archive_close_failed")
        finally:
            self._state = SessionState.STOPPED
