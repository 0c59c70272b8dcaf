"""Shared HTTP utilities for session management.

This module provides the pooled `requests.Session` used by the gateway. Retries
are driven by the gateway's own retry loop (so that every attempt is audited),
so the transport adapters are mounted with urllib3 retries disabled.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Default pool configuration
DEFAULT_POOL_CONNECTIONS = 10
DEFAULT_POOL_MAXSIZE = 20
DEFAULT_CONNECT_TIMEOUT_MS = 5000
DEFAULT_READ_TIMEOUT_MS = 10000


def create_pooled_session(
    pool_connections: int = DEFAULT_POOL_CONNECTIONS,
    pool_maxsize: int = DEFAULT_POOL_MAXSIZE,
) -> requests.Session:
    """Create a requests session with connection pooling and no transport retries.

    Args:
        pool_connections: Number of connection pools to cache (one per host).
        pool_maxsize: Maximum connections kept per pool; size this to the
            number of threads calling the gateway concurrently.

    Returns:
        Configured requests.Session.

    Example:
        ```python
        from dict_gateway.foundation.http import create_pooled_session, to_timeout

        session = create_pooled_session(pool_maxsize=50)
        response = session.get(url, headers=headers, timeout=to_timeout(5000, 10000))
        ```

    Note:
        The session mounts identical adapters for both HTTP and HTTPS.
    """
    session = requests.Session()
    no_retry = Retry(total=0, read=False)
    adapter = HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=no_retry,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def to_timeout(connect_timeout_ms: int, read_timeout_ms: int) -> tuple[float, float]:
    """Convert millisecond timeouts into the `(connect, read)` tuple requests expects."""
    return (connect_timeout_ms / 1000.0, read_timeout_ms / 1000.0)
