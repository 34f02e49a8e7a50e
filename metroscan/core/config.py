"""
Core configuration and settings for MetroScan.
"""

import json
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Public CORS proxies used as a fallback when a site refuses direct fetches.
# Each entry is a template; "{url}" is replaced with the URL-encoded target.
DEFAULT_CORS_PROXIES = [
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
    "https://api.codetabs.com/v1/proxy?quest={url}",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="METROSCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "MetroScan"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    json_logs: bool = False

    # Scan defaults
    max_pages: int = 12
    max_depth: int = 2
    request_budget: int = 4_000_000  # bytes across the whole scan
    concurrency: int = 3
    max_content_length_bytes: int = 1_200_000

    # Fetcher
    fetch_timeout: float = 8.0  # seconds
    fetch_retries: int = 2
    fetch_backoff: float = 0.3  # seconds, multiplied by attempt number
    fetch_max_content_length_bytes: int = 1_500_000
    robots_timeout: float = 3.0
    respect_robots: bool = True
    sitemap_timeout: float = 6.0
    probe_snippet_chars: int = 800
    probe_max_content_length_bytes: int = 800_000

    # Proxies
    use_proxies: bool = True
    prefer_proxies: bool = False  # browser-like mode: proxies before direct
    cors_proxies: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_PROXIES))

    @field_validator("cors_proxies", mode="before")
    @classmethod
    def parse_cors_proxies(cls, v: Any) -> list[str]:
        """Parse proxy templates from JSON string if needed."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, treat as comma-separated
                return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("cors_proxies")
    @classmethod
    def validate_cors_proxies(cls, v: list[str]) -> list[str]:
        """Every proxy template needs a {url} placeholder."""
        for template in v:
            if "{url}" not in template:
                raise ValueError(f"proxy template missing {{url}} placeholder: {template}")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
