"""Live market-data ingestion into DuckDB with a raw DBN archive."""

__version__ = "0.1.0"
