"""
Shared configuration management for the provisioning clients.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseModel):
    """Size and expiry (seconds) of one in-memory cache."""

    size: int = Field(default=100, gt=0)
    expiry: float = Field(default=300.0, gt=0)


class ClientsConfig(BaseSettings):
    """Configuration shared by every backend client.

    Values come from ``CLIENTS_*`` environment variables or a ``.env``
    file; nested cache settings use ``__`` (``CLIENTS_PACKAGE_CACHE__SIZE``).
    """

    model_config = SettingsConfigDict(
        env_prefix="CLIENTS_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Account backend
    account_api_url: str = "http://localhost:8080"
    account_api_username: Optional[str] = None
    account_api_password: Optional[str] = None

    # Provisioning backend
    provisioning_api_url: str = "http://localhost:8081"
    provisioning_api_username: Optional[str] = None
    provisioning_api_password: Optional[str] = None

    # Transport
    http_timeout: float = 10.0
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = 0.5
    retry_max_delay: float = 5.0
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_timeout: float = 30.0

    # Caches
    account_cache: CacheSettings = CacheSettings(size=1000, expiry=300)
    auth_cache: CacheSettings = CacheSettings(size=100, expiry=60)
    keys_cache: CacheSettings = CacheSettings(size=1000, expiry=300)
    package_cache: CacheSettings = CacheSettings(size=100, expiry=300)
    dataset_cache: CacheSettings = CacheSettings(size=100, expiry=300)


def get_config(**overrides) -> ClientsConfig:
    """Load configuration from the environment, applying explicit overrides."""
    return ClientsConfig(**overrides)
