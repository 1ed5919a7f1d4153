"""
Shared configuration management for the Content Proxy service.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CONTENT_PROXY_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Upstream hosts
    raw_content_url: str = Field(default="https://raw.githubusercontent.com")
    github_token: Optional[str] = Field(default=None)
    conversion_service_url: str = Field(
        default="https://adobeioruntime.net/api/v1/web/helix/helix-services/word2md@v2"
    )

    # Caching and dispatch
    cache_max_size: int = Field(default=1000)
    fetch_timeout: float = Field(default=10.0)
    # Deadline for one backend fetch, retries included; derived from fetch_timeout when unset
    dispatch_timeout: Optional[float] = Field(default=None)
    passthrough_statuses: List[int] = Field(default_factory=lambda: [404, 503])


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
