"""Typed configuration models using pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

try:
    from pydantic_settings import TomlConfigSettingsSource

    _HAS_TOML = True
except ImportError:
    _HAS_TOML = False

# Destination that sends the archive stream to stdout instead of a file
STDOUT_SENTINEL = "-"


class LiveSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIVE_", populate_by_name=True)

    api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("LIVE_API_KEY", "DATABENTO_API_KEY"),
        description="Databento API key",
    )
    dataset: str = Field(default="", description="Dataset to subscribe to, e.g. DBEQ.BASIC")
    schemas: list[str] = Field(
        default=["trades"],
        description="Schemas to subscribe to, one request per schema",
    )
    symbols: list[str] = Field(default=[], description="Symbols to pre-subscribe")
    stype_in: str = Field(default="raw_symbol", description="Symbology of `symbols`")
    out: str = Field(
        default="",
        description="Archive destination ('-' for stdout, '*.zst' is compressed)",
    )
    start: str | None = Field(default=None, description="ISO 8601 start time (default: now)")
    snapshot: bool = Field(default=False, description="Request a snapshot on subscription")
    verbose: bool = Field(default=False)


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_root: Path = Field(default=Path("data"), description="Root directory for all data")
    duckdb_filename: str = Field(
        default="livetape.duckdb",
        description="DuckDB file under data_root, or ':memory:'",
    )

    @property
    def in_memory(self) -> bool:
        return self.duckdb_filename == ":memory:"

    @property
    def duckdb_path(self) -> Path:
        return self.data_root / self.duckdb_filename


class AppSettings(BaseSettings):
    """Top-level settings composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        toml_file="config.toml",
        extra="ignore",
    )

    live: LiveSettings = Field(default_factory=LiveSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Emit JSON log lines instead of console output")

    @classmethod
    def settings_customise_sources(cls, settings_cls, **kwargs):  # type: ignore[override]
        sources = (
            kwargs["env_settings"],
            kwargs["dotenv_settings"],
        )
        if _HAS_TOML:
            sources += (TomlConfigSettingsSource(settings_cls),)
        sources += (kwargs["init_settings"],)
        return sources
