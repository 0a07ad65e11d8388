"""
bulkorder.config.platform – ordering platform API connection config.

Env vars: PLATFORM_API_URL, PLATFORM_API_TOKEN, PLATFORM_API_TIMEOUT.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("PLATFORM_API_URL is required and must be non-empty")
    if not (url.startswith("http://") or url.startswith("https://")):
        raise ValueError("PLATFORM_API_URL must start with http:// or https://")
    return url.rstrip("/")


@dataclass(frozen=True)
class PlatformApiConfig:
    """Where the platform API lives and how long to wait for it."""

    base_url: str
    """API root, e.g. https://api.example.com/api. Trailing slash is stripped."""

    api_token: Optional[str] = None
    """Bearer token. Never logged."""

    timeout: float = 30.0
    """Seconds per request. Retry policy belongs to the caller."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", _validate_url(self.base_url))
        if not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise ValueError(f"timeout must be a positive number, got {self.timeout!r}")

    def __repr__(self) -> str:
        token = "***" if self.api_token else None
        return f"PlatformApiConfig(base_url={self.base_url!r}, api_token={token!r}, timeout={self.timeout})"

    @classmethod
    def from_env(cls, **overrides: object) -> "PlatformApiConfig":
        url = overrides.get("base_url") or os.environ.get("PLATFORM_API_URL", "http://localhost:8000/api")
        token = overrides.get("api_token") or os.environ.get("PLATFORM_API_TOKEN") or None
        timeout = overrides.get("timeout")
        if timeout is None:
            timeout = float(os.environ.get("PLATFORM_API_TIMEOUT", "30"))
        return cls(base_url=str(url), api_token=token, timeout=float(timeout))


def load_platform_config(**overrides: object) -> PlatformApiConfig:
    """Load and validate platform API config from environment."""
    return PlatformApiConfig.from_env(**overrides)
