"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from livetape.config.loader import with_live_overrides
from livetape.config.settings import AppSettings, LiveSettings, StorageSettings


def test_default_settings(monkeypatch):
    """AppSettings can be created with defaults."""
    monkeypatch.delenv("LIVE_API_KEY", raising=False)
    monkeypatch.delenv("DATABENTO_API_KEY", raising=False)

    settings = AppSettings()

    assert settings.log_level == "INFO"
    assert settings.live.schemas == ["trades"]
    assert settings.live.stype_in == "raw_symbol"
    assert settings.live.api_key.get_secret_value() == ""
    assert settings.storage.data_root.name == "data"


def test_api_key_falls_back_to_vendor_variable(monkeypatch):
    monkeypatch.delenv("LIVE_API_KEY", raising=False)
    monkeypatch.setenv("DATABENTO_API_KEY", "db-from-env")

    assert LiveSettings().api_key.get_secret_value() == "db-from-env"


def test_prefixed_api_key_wins(monkeypatch):
    monkeypatch.setenv("LIVE_API_KEY", "db-prefixed")
    monkeypatch.setenv("DATABENTO_API_KEY", "db-from-env")

    assert LiveSettings().api_key.get_secret_value() == "db-prefixed"


def test_api_key_is_not_printed():
    settings = LiveSettings(api_key="db-secret")

    assert "db-secret" not in repr(settings)


def test_live_settings_from_env(monkeypatch):
    monkeypatch.setenv("LIVE_DATASET", "DBEQ.BASIC")
    monkeypatch.setenv("LIVE_SYMBOLS", '["AAPL", "MSFT"]')
    monkeypatch.setenv("LIVE_SCHEMAS", '["trades", "ohlcv-1m"]')

    live = LiveSettings()

    assert live.dataset == "DBEQ.BASIC"
    assert live.symbols == ["AAPL", "MSFT"]
    assert live.schemas == ["trades", "ohlcv-1m"]


def test_storage_paths():
    """StorageSettings computes derived paths correctly."""
    s = StorageSettings(data_root=Path("/tmp/tape"))

    assert s.duckdb_path == Path("/tmp/tape/livetape.duckdb")
    assert not s.in_memory
    assert StorageSettings(duckdb_filename=":memory:").in_memory


def test_cli_overrides_replace_configured_values():
    configured = LiveSettings(api_key="db-config", dataset="DBEQ.BASIC", symbols=["AAPL"], snapshot=True)

    live = with_live_overrides(configured, dataset="XNAS.ITCH", symbols=None, api_key="db-flag", snapshot=False)

    assert live.dataset == "XNAS.ITCH"
    assert live.symbols == ["AAPL"]
    assert live.api_key.get_secret_value() == "db-flag"
    assert live.snapshot is True
    assert configured.dataset == "DBEQ.BASIC"


def test_unknown_override_is_rejected():
    with pytest.raises(ValueError, match="Unknown live settings"):
        with_live_overrides(LiveSettings(), datasets="typo")
