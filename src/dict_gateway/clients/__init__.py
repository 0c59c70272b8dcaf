"""External service clients (dictionary API, audit database).

This module provides factory functions for creating configured client
instances from centralized configuration.
"""

import requests

from dict_gateway.config import Settings, get_settings
from dict_gateway.core.audit import CallAuditRecorder, CallLogStore
from dict_gateway.foundation.http import create_pooled_session
from dict_gateway.foundation.rate_limiter import TokenBucketRateLimiter
from dict_gateway.foundation.retry import RetryPolicy

from .call_log_store import SqlAlchemyCallLogStore
from .dict_gateway import DictGatewayClient


def create_call_log_store(settings: Settings | None = None) -> SqlAlchemyCallLogStore:
    """Create the SQLAlchemy audit store and make sure its table exists.

    Args:
        settings: Optional Settings. If None, uses get_settings().

    Returns:
        Configured SqlAlchemyCallLogStore instance.
    """
    if settings is None:
        settings = get_settings()
    store = SqlAlchemyCallLogStore.from_url(settings.audit.database_url)
    store.create_schema()
    return store


def create_dict_gateway_client(
    settings: Settings | None = None,
    *,
    store: CallLogStore | None = None,
    session: requests.Session | None = None,
) -> DictGatewayClient:
    """Create a configured dictionary gateway client.

    Args:
        settings: Optional Settings. If None, uses settings from get_settings().
        store: Optional audit store. Defaults to the SQLAlchemy store built
            from `settings.audit`.
        session: Optional requests session for connection pooling.

    Returns:
        DictGatewayClient with its own rate limiter; share the instance across
        threads so that the limit is global.

    Example:
        ```python
        from dict_gateway.clients import create_dict_gateway_client

        client = create_dict_gateway_client()
        body = client.query_dict(page_num=1, page_size=10, dict_type="gender")
        ```
    """
    if settings is None:
        settings = get_settings()
    if store is None:
        store = create_call_log_store(settings)
    if session is None:
        session = create_pooled_session(pool_maxsize=settings.dict_api.pool_maxsize)

    api = settings.dict_api
    return DictGatewayClient(
        base_url=api.base_url,
        app_key=api.app_key,
        app_secret=api.app_secret,
        rate_limiter=TokenBucketRateLimiter(
            capacity=settings.rate_limit.capacity,
            refill_tokens=settings.rate_limit.refill_tokens,
            refill_interval_ms=settings.rate_limit.refill_interval_ms,
        ),
        recorder=CallAuditRecorder(
            store=store,
            message_max_length=settings.audit.exception_message_max_length,
        ),
        retry_policy=RetryPolicy.from_millis(
            max_attempts=settings.retry.max_attempts,
            initial_delay_ms=settings.retry.initial_delay_ms,
            multiplier=settings.retry.multiplier,
            max_delay_ms=settings.retry.max_delay_ms,
        ),
        connect_timeout_ms=api.connect_timeout_ms,
        read_timeout_ms=api.read_timeout_ms,
        timestamp_timezone=api.timestamp_timezone,
        session=session,
    )


__all__ = [
    "DictGatewayClient",
    "SqlAlchemyCallLogStore",
    "create_call_log_store",
    "create_dict_gateway_client",
]
