"""Config loading with layered resolution: env > .env > config.toml > defaults.

Command-line flags sit on top of all of these and are merged per invocation
with `with_live_overrides`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import SecretStr

from livetape.config.settings import AppSettings, LiveSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Load and cache application settings."""
    return AppSettings()


def with_live_overrides(live: LiveSettings, **overrides: Any) -> LiveSettings:
    """Return a copy of `live` with every flag the user actually passed applied.

    None, empty lists and False mean "not given" and keep the configured value,
    so a boolean flag can switch a setting on but never off.
    """
    update = {k: v for k, v in overrides.items() if v}
    if isinstance(update.get("api_key"), str):
        update["api_key"] = SecretStr(update["api_key"])

    unknown = set(update) - set(LiveSettings.model_fields)
    if unknown:
        raise ValueError(f"Unknown live settings: {', '.join(sorted(unknown))}")

    return live.model_copy(update=update)
