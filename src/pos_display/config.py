"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

TAX_RATE = 0.08975


def _env(name: str, default: str) -> str:
    return os.environ.get(f"POS_DISPLAY_{name}", default)


def _default_cors_origins() -> list[str]:
    """Parse the comma separated list of allowed CORS origins."""

    raw = _env("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(slots=True)
class Settings:
    """Runtime configuration loaded from environment variables."""

    app_name: str = field(default_factory=lambda: _env("APP_NAME", "POS Display Hub"))
    host: str = field(default_factory=lambda: _env("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(_env("PORT", "3000")))
    reload: bool = field(default_factory=lambda: _env("RELOAD", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "info"))
    tax_rate: float = field(default_factory=lambda: float(_env("TAX_RATE", str(TAX_RATE))))
    clear_delay: float = field(default_factory=lambda: float(_env("CLEAR_DELAY", "3.0")))
    subscriber_queue_size: int = field(default_factory=lambda: int(_env("SUBSCRIBER_QUEUE_SIZE", "100")))
    send_timeout: float = field(default_factory=lambda: float(_env("SEND_TIMEOUT", "5.0")))
    cors_origins: list[str] = field(default_factory=_default_cors_origins)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
