"""Point-in-time instrument id -> ticker resolution."""

from __future__ import annotations

from livetape.livedata.base import SessionMetadata
from livetape.livedata.records import SymbolMappingRecord
from livetape.utils.dates import midpoint, split_timestamp, utc_date
from livetape.utils.logging import get_logger

logger = get_logger(__name__)


class SymbolResolver:
    """Holds the current ticker for each instrument id.

    Only the latest binding per id is kept; an update replaces it outright.
    """

    def __init__(self) -> None:
        self._tickers: dict[int, str] = {}

    def __len__(self) -> int:
        return len(self._tickers)

    def initialize(self, metadata: SessionMetadata) -> int:
        """Seed bindings valid at the midpoint of the session's bounds.

        Returns the number of bindings installed.
        """
        mid_ns = midpoint(metadata.start, metadata.end)
        mid_date = utc_date(split_timestamp(mid_ns)[0])

        installed = 0
        for interval in metadata.mappings:
            if interval.covers(mid_date):
                self._tickers[interval.instrument_id] = interval.ticker
                installed += 1

        logger.debug("symbols_initialized", bindings=installed, as_of=mid_date.isoformat())
        return installed

    def resolve(self, instrument_id: int) -> str | None:
        """Current ticker for an id, or None when it has no binding yet."""
        return self._tickers.get(instrument_id)

    def apply_mapping_update(self, record: SymbolMappingRecord) -> None:
        previous = self._tickers.get(record.instrument_id)
        self._tickers[record.instrument_id] = record.stype_out_symbol
        if previous is not None and previous != record.stype_out_symbol:
            logger.info(
                "symbol_remapped",
                instrument_id=record.instrument_id,
                old=previous,
                new=record.stype_out_symbol,
            )
