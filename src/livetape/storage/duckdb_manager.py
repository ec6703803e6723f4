"""DuckDB connection management and schema migration."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import duckdb
import polars as pl

from livetape.storage import migrations
from livetape.utils.logging import get_logger

logger = get_logger(__name__)

MEMORY = ":memory:"


class DuckDBManager:
    """Manages the DuckDB connection shared by ingestion and queries.

    A DuckDB connection must not be used from several threads at once, so
    every independent caller takes its own `cursor()`.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = db_path
        self._conn: duckdb.DuckDBPyConnection | None = None

    @property
    def in_memory(self) -> bool:
        return str(self._db_path) == MEMORY or Path(self._db_path).name == MEMORY

    @contextmanager
    def connect(self) -> Generator[DuckDBManager, None, None]:
        """Context manager for DuckDB connection lifecycle."""
        if self.in_memory:
            logger.warning("duckdb_in_memory", detail="data is lost when the process exits")
            self._conn = duckdb.connect(MEMORY)
        else:
            path = Path(self._db_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = duckdb.connect(str(path))
        try:
            yield self
        finally:
            self._conn.close()
            self._conn = None

    def migrate(self, tables: list[str] | None = None) -> list[str]:
        """Create tables and indexes if missing. Safe to run on every startup.

        Returns the list of migrated table names.
        """
        assert self._conn is not None, "Not connected. Use `with manager.connect():`"

        done = []
        for table in tables or list(migrations.MIGRATIONS):
            for statement in migrations.render(table).split(";"):
                if statement.strip():
                    self._conn.execute(statement)
            done.append(table)
            logger.debug("table_migrated", table=table)

        return done

    def cursor(self) -> duckdb.DuckDBPyConnection:
        """A cursor for use by a single thread."""
        assert self._conn is not None, "Not connected. Use `with manager.connect():`"
        return self._conn.cursor()

    def execute(self, sql: str, params: list | None = None) -> duckdb.DuckDBPyConnection:
        """Execute SQL on a fresh cursor and return it for fetching."""
        return self.cursor().execute(sql, params)

    def to_polars(self, sql: str, params: list | None = None) -> pl.DataFrame:
        """Execute SQL and return a Polars DataFrame."""
        return self.execute(sql, params).pl()

    def table_info(self) -> list[dict]:
        """Return metadata about all tables."""
        assert self._conn is not None, "Not connected. Use `with manager.connect():`"

        cur = self.cursor()
        tables = cur.execute("SHOW TABLES").fetchall()
        info = []
        for (name,) in tables:
            try:
                count = cur.execute(f"SELECT COUNT(*) FROM {name}").fetchone()[0]
                cols = cur.execute(f"DESCRIBE {name}").fetchall()
                info.append({
                    "name": name,
                    "rows": count,
                    "columns": len(cols),
                    "column_names": [c[0] for c in cols],
                })
            except duckdb.Error as e:
                info.append({"name": name, "error": str(e)})

        return info
