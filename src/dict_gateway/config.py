"""Configuration management for the dictionary gateway.

This module provides the configuration system using Pydantic models. All
settings are loaded from environment variables with sensible dev defaults.

## Configuration Sources

Configuration is read from environment variables at process startup. The
`get_settings()` function uses `@lru_cache` to ensure settings are loaded once
per process.

## Environment Variables

**Dictionary API**
- `DICT_API_BASE_URL`: Base URL of the upstream API
  (default: `http://localhost:18022`)
- `DICT_API_APP_KEY`: Application key sent in the `AppKey` header (required)
- `DICT_API_APP_SECRET`: Shared secret used for signing (required)
- `DICT_API_CONNECT_TIMEOUT_MS`: Connect timeout (default: `5000`)
- `DICT_API_READ_TIMEOUT_MS`: Read timeout (default: `10000`)
- `DICT_API_TIMESTAMP_TZ`: Time zone of the signing timestamp
  (default: `Asia/Shanghai`)
- `DICT_API_POOL_MAXSIZE`: Connections kept in the HTTP pool (default: `20`)

**Rate Limiting**
- `RATE_LIMIT_CAPACITY`: Token bucket capacity (default: `100`)
- `RATE_LIMIT_REFILL_TOKENS`: Tokens added per interval (default: `10`)
- `RATE_LIMIT_REFILL_INTERVAL_MS`: Refill interval (default: `1000`)

**Retry**
- `RETRY_MAX_ATTEMPTS`: Total attempts per call (default: `3`)
- `RETRY_INITIAL_DELAY_MS`: First backoff delay (default: `1000`)
- `RETRY_MULTIPLIER`: Backoff multiplier (default: `2.0`)
- `RETRY_MAX_DELAY_MS`: Backoff cap (default: `10000`)

**Audit**
- `AUDIT_DATABASE_URL`: SQLAlchemy URL of the audit database
  (default: `sqlite:///./external_call_log.db`)
- `AUDIT_EXCEPTION_MESSAGE_MAX_LENGTH`: Truncation limit for stored exception
  messages (default: `1000`)

## Usage

```python
from dict_gateway.config import get_settings
from dict_gateway.clients import create_dict_gateway_client

settings = get_settings()
client = create_dict_gateway_client(settings)
```
"""

import os
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import SettingsConfigDict


class DictApiConfig(BaseModel):
    """Configuration for the upstream dictionary API.

    Attributes:
        base_url: Base URL of the upstream (path is appended by the client).
        app_key: Application key, sent as the `AppKey` header.
        app_secret: Shared secret for HMAC signing. Never logged.
        connect_timeout_ms: TCP connect timeout in milliseconds.
        read_timeout_ms: Read timeout in milliseconds.
        timestamp_timezone: IANA zone used to format the `Timestamp` header.
        pool_maxsize: Maximum pooled connections to the upstream host.
    """

    base_url: str
    app_key: str = Field(min_length=1)
    app_secret: str = Field(min_length=1, repr=False)
    connect_timeout_ms: int = Field(default=5000, gt=0)
    read_timeout_ms: int = Field(default=10000, gt=0)
    timestamp_timezone: str = "Asia/Shanghai"
    pool_maxsize: int = Field(default=20, gt=0)

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "DictApiConfig":
        """Create DictApiConfig from environment variables.

        Raises:
            ValueError: If `DICT_API_APP_KEY` or `DICT_API_APP_SECRET` is missing.
        """
        app_key = os.getenv("DICT_API_APP_KEY")
        if not app_key:
            raise ValueError("DICT_API_APP_KEY is required")
        app_secret = os.getenv("DICT_API_APP_SECRET")
        if not app_secret:
            raise ValueError("DICT_API_APP_SECRET is required")
        return cls(
            base_url=os.getenv("DICT_API_BASE_URL") or "http://localhost:18022",
            app_key=app_key,
            app_secret=app_secret,
            connect_timeout_ms=int(os.getenv("DICT_API_CONNECT_TIMEOUT_MS", "5000")),
            read_timeout_ms=int(os.getenv("DICT_API_READ_TIMEOUT_MS", "10000")),
            timestamp_timezone=os.getenv("DICT_API_TIMESTAMP_TZ") or "Asia/Shanghai",
            pool_maxsize=int(os.getenv("DICT_API_POOL_MAXSIZE", "20")),
        )


class RateLimitConfig(BaseModel):
    """Configuration for the global token bucket.

    Attributes:
        capacity: Maximum burst size.
        refill_tokens: Tokens added per refill interval (0 disables refill).
        refill_interval_ms: Refill interval in milliseconds.
    """

    capacity: int = Field(default=100, gt=0)
    refill_tokens: int = Field(default=10, ge=0)
    refill_interval_ms: int = Field(default=1000, gt=0)

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "RateLimitConfig":
        return cls(
            capacity=int(os.getenv("RATE_LIMIT_CAPACITY", "100")),
            refill_tokens=int(os.getenv("RATE_LIMIT_REFILL_TOKENS", "10")),
            refill_interval_ms=int(os.getenv("RATE_LIMIT_REFILL_INTERVAL_MS", "1000")),
        )


class RetryConfig(BaseModel):
    """Configuration for the per-call retry policy.

    Attributes:
        max_attempts: Total attempts including the first.
        initial_delay_ms: Delay after the first failed attempt.
        multiplier: Backoff growth factor.
        max_delay_ms: Cap for a single backoff delay.
    """

    max_attempts: int = Field(default=3, gt=0)
    initial_delay_ms: int = Field(default=1000, gt=0)
    multiplier: float = Field(default=2.0, gt=0)
    max_delay_ms: int = Field(default=10000, gt=0)

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "RetryConfig":
        return cls(
            max_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", "3")),
            initial_delay_ms=int(os.getenv("RETRY_INITIAL_DELAY_MS", "1000")),
            multiplier=float(os.getenv("RETRY_MULTIPLIER", "2.0")),
            max_delay_ms=int(os.getenv("RETRY_MAX_DELAY_MS", "10000")),
        )


class AuditConfig(BaseModel):
    """Configuration for the audit trail.

    Attributes:
        database_url: SQLAlchemy URL of the audit database.
        exception_message_max_length: Truncation limit for stored messages.
    """

    database_url: str = "sqlite:///./external_call_log.db"
    exception_message_max_length: int = Field(default=1000, gt=0)

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "AuditConfig":
        return cls(
            database_url=os.getenv("AUDIT_DATABASE_URL") or "sqlite:///./external_call_log.db",
            exception_message_max_length=int(os.getenv("AUDIT_EXCEPTION_MESSAGE_MAX_LENGTH", "1000")),
        )


class Settings(BaseModel):
    """Top-level gateway settings.

    Attributes:
        dict_api: Upstream API configuration.
        rate_limit: Token bucket configuration.
        retry: Retry policy configuration.
        audit: Audit trail configuration.
    """

    dict_api: DictApiConfig
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            dict_api=DictApiConfig.from_env(),
            rate_limit=RateLimitConfig.from_env(),
            retry=RetryConfig.from_env(),
            audit=AuditConfig.from_env(),
        )


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Get cached settings instance.

    Settings are loaded once per process. Call `get_settings.cache_clear()` to
    reload (tests only).

    Returns:
        Settings instance loaded from environment variables.
    """
    return Settings.from_env()
