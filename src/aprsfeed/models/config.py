"""Feed client configuration.

Values are resolved in this order (highest wins):

1. CLI flags, applied with :meth:`FeedSettings.merge_overrides`
2. ``APRSFEED_*`` environment variables (and a local ``.env`` file)
3. The JSON config file, ``~/.config/aprsfeed/config.json`` by default
4. Built-in defaults
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aprsfeed import __version__

DEFAULT_CONFIG_PATH = Path("~/.config/aprsfeed/config.json")

# UK amateur callsigns start with M, G or 2.
DEFAULT_REGIONAL_PREFIXES: tuple[str, ...] = ("M", "G", "2")


class FeedSettings(BaseSettings):
    """Connection, login and filtering settings for :class:`~aprsfeed.feed.session.FeedClient`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APRSFEED_",
        extra="ignore",
    )

    host: str = "euro.aprs2.net"
    port: int = Field(default=14580, ge=1, le=65535)
    callsign: str = "N0CALL"
    passcode: str = "-1"
    """APRS-IS passcode. ``-1`` logs in receive-only."""
    client_name: str = "aprsfeed"
    client_version: str = __version__
    filter_expr: str = "ps"
    """Type filter sent as ``filter t/<expr>`` (``p`` = position, ``s`` = status)."""
    regional_prefixes: list[str] = Field(default_factory=lambda: list(DEFAULT_REGIONAL_PREFIXES))
    read_timeout: float = Field(default=10.0, gt=0)
    """Seconds to wait for the next line before the connection is considered stalled."""
    backoff: float = Field(default=10.0, ge=0)
    """Fixed delay between the end of one connection and the next attempt."""
    connect_timeout: float = Field(default=30.0, gt=0)

    @field_validator("regional_prefixes", mode="before")
    @classmethod
    def _split_prefixes(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [p.strip() for p in value.split(",") if p.strip()]
        return value

    @field_validator("regional_prefixes")
    @classmethod
    def _single_character_prefixes(cls, value: list[str]) -> list[str]:
        bad = [p for p in value if len(p) != 1]
        if bad:
            raise ValueError(f"Regional prefixes must be single characters: {', '.join(bad)}")
        return value

    @classmethod
    def load(cls, path: Path | str | None = None) -> FeedSettings:
        """Load settings from a JSON file, with environment variables taking precedence.

        Falls back to environment + defaults if the file does not exist.
        """
        resolved = DEFAULT_CONFIG_PATH.expanduser() if path is None else Path(path)

        env_settings = cls()
        if not resolved.exists():
            return env_settings

        raw = json.loads(resolved.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {resolved} must contain a JSON object")
        data: dict[str, Any] = dict(raw)
        data.update(env_settings.model_dump(include=env_settings.model_fields_set))
        return cls(**data)

    def merge_overrides(self, **overrides: Any) -> FeedSettings:
        """Return a new settings object with non-``None`` CLI flag overrides applied."""
        data: dict[str, Any] = self.model_dump()
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in type(self).model_fields:
                raise KeyError(f"Unknown setting: {key}")
            data[key] = value
        return type(self)(**data)
