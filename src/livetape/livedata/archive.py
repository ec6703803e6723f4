"""Byte-for-byte archive of the raw record stream."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import BinaryIO

import zstandard

from livetape.config.settings import STDOUT_SENTINEL
from livetape.livedata.base import ArchivalError, SessionMetadata
from livetape.utils.logging import get_logger

logger = get_logger(__name__)

ZSTD_SUFFIX = ".zst"


class ArchiveSink:
    """Writes the metadata header once, then every record verbatim in arrival order.

    The layout is a plain concatenation; records are length-prefixed by their
    own headers so no delimiters are added.
    """

    def __init__(self, stream: BinaryIO, destination: str, owns_stream: bool = True) -> None:
        self._stream = stream
        self._destination = destination
        self._owns_stream = owns_stream
        self._header_written = False
        self._closed = False
        self.records_written = 0
        self.bytes_written = 0

    @property
    def destination(self) -> str:
        return self._destination

    @property
    def closed(self) -> bool:
        return self._closed

    def write_header(self, metadata: SessionMetadata) -> None:
        if self._header_written:
            raise ArchivalError(f"Metadata header already written to {self._destination}")
        self._write(metadata.raw)
        self._header_written = True

    def append(self, raw: bytes) -> None:
        if not self._header_written:
            raise ArchivalError("Record appended before the metadata header")
        self._write(raw)
        self.records_written += 1

    def close(self) -> None:
        """Flush and release the output. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._owns_stream:
                self._stream.close()
            else:
                self._stream.flush()
        except OSError as e:
            raise ArchivalError(f"Failed to close archive {self._destination}: {e}") from e

        logger.info(
            "archive_closed",
            destination=self._destination,
            records=self.records_written,
            bytes=self.bytes_written,
        )

    def __enter__(self) -> ArchiveSink:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _write(self, data: bytes) -> None:
        if self._closed:
            raise ArchivalError(f"Archive {self._destination} is closed")
        try:
            self._stream.write(data)
        except (OSError, zstandard.ZstdError) as e:
            raise ArchivalError(f"Failed to write to archive {self._destination}: {e}") from e
        self.bytes_written += len(data)


def open_archive(destination: str) -> ArchiveSink:
    """Open an archive sink for a destination.

    '-' writes to stdout uncompressed. A '.zst' suffix compresses with zstd.
    Anything else is written as a plain binary file.
    """
    if not destination:
        raise ArchivalError("No archive destination given")

    if destination == STDOUT_SENTINEL:
        return ArchiveSink(sys.stdout.buffer, "<stdout>", owns_stream=False)

    path = Path(destination)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = open(path, "wb")
    except OSError as e:
        raise ArchivalError(f"Failed to create archive file {path}: {e}") from e

    if path.suffix == ZSTD_SUFFIX:
        stream = zstandard.ZstdCompressor().stream_writer(fh)
        logger.debug("archive_opened", destination=str(path), compression="zstd")
        return ArchiveSink(stream, str(path))

    logger.debug("archive_opened", destination=str(path), compression=None)
    return ArchiveSink(fh, str(path))
