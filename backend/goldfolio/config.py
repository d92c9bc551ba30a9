"""Environment-driven application settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

DEFAULT_PRICE_URL = "https://api.gold-api.com/price/XAU"

PRICE_SOURCES = ("http", "simulator")
LEDGER_PRICE_SOURCES = ("client", "server")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Every field maps to a ``GOLDFOLIO_*`` environment variable. Use
    ``Settings.from_env()`` in production code; tests construct it directly.
    """

    price_source: str = "http"
    price_url: str = DEFAULT_PRICE_URL
    price_timeout: float = 10.0
    poll_interval: float = 10.0
    keepalive_interval: float = 30.0
    stream_replay_latest: bool = False
    ledger_price_source: str = "client"
    db_path: Path = field(default_factory=lambda: Path("data/goldfolio.db"))
    owner_header: str = "X-User-Id"
    admin_enabled: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    def __post_init__(self) -> None:
        if self.price_source not in PRICE_SOURCES:
            raise ConfigError(
                f"GOLDFOLIO_PRICE_SOURCE must be one of {PRICE_SOURCES}, got {self.price_source!r}"
            )
        if self.ledger_price_source not in LEDGER_PRICE_SOURCES:
            raise ConfigError(
                "GOLDFOLIO_LEDGER_PRICE_SOURCE must be one of "
                f"{LEDGER_PRICE_SOURCES}, got {self.ledger_price_source!r}"
            )
        for name in ("price_timeout", "poll_interval", "keepalive_interval"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if not self.owner_header.strip():
            raise ConfigError("GOLDFOLIO_OWNER_HEADER must not be empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(f"GOLDFOLIO_{name}", default).strip()

        return cls(
            price_source=get("PRICE_SOURCE", "http").lower(),
            price_url=get("PRICE_URL", DEFAULT_PRICE_URL),
            price_timeout=_parse_float("PRICE_TIMEOUT", get("PRICE_TIMEOUT", "10")),
            poll_interval=_parse_float("POLL_INTERVAL", get("POLL_INTERVAL", "10")),
            keepalive_interval=_parse_float(
                "KEEPALIVE_INTERVAL", get("KEEPALIVE_INTERVAL", "30")
            ),
            stream_replay_latest=_parse_bool(
                "STREAM_REPLAY_LATEST", get("STREAM_REPLAY_LATEST", "0")
            ),
            ledger_price_source=get("LEDGER_PRICE_SOURCE", "client").lower(),
            db_path=Path(get("DB_PATH", "data/goldfolio.db")),
            owner_header=get("OWNER_HEADER", "X-User-Id"),
            admin_enabled=_parse_bool("ADMIN_ENABLED", get("ADMIN_ENABLED", "0")),
            log_level=get("LOG_LEVEL", "INFO").upper(),
            host=get("HOST", "127.0.0.1"),
            port=_parse_int("PORT", get("PORT", "8000")),
        )


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"GOLDFOLIO_{name} must be a number, got {raw!r}") from None


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"GOLDFOLIO_{name} must be an integer, got {raw!r}") from None


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"GOLDFOLIO_{name} must be a boolean flag, got {raw!r}")


__all__ = ["DEFAULT_PRICE_URL", "Settings"]
