"""Exception hierarchy for the dictionary gateway.

This module defines a framework-agnostic exception hierarchy that allows:
- Gateway code to raise errors without HTTP dependencies
- An outer HTTP layer to translate exceptions into status codes
- CLI tools and tests to handle errors consistently

## Exception Hierarchy

- `GatewayError`: Base class (maps to HTTP 500)
  - `BadRequestError`: Invalid query parameters (maps to HTTP 400)
  - `ServiceBusyError`: Rejected by the rate limiter (maps to HTTP 503)
- `UpstreamError`: The dictionary API failed after all permitted attempts,
  or failed with a non-retriable error (maps to HTTP 502)
- `SignatureError`: The request could not be signed

## Usage

```python
from dict_gateway.core.exceptions import ServiceBusyError, UpstreamError

try:
    body = client.query_dict(page_num=1, page_size=10, dict_type="gender")
except ServiceBusyError:
    ...  # ask the caller to retry later
except UpstreamError as e:
    log.error("dictionary lookup failed", extra={"classification": e.classification})
```
"""

# Re-export from foundation so callers only need this module
from dict_gateway.foundation.exceptions import SignatureError, UpstreamError  # noqa: F401


class GatewayError(Exception):
    """Base exception class for gateway errors raised to callers.

    This exception maps to HTTP 500 (Internal Server Error) if not caught
    and translated by a more specific exception handler.
    """


class BadRequestError(GatewayError):
    """Exception raised when the caller provides an invalid query.

    Examples:
        - `pageNum` lower than 1
        - `pageSize` outside 1..100
        - blank `dictType` or one longer than 50 characters
    """


class ServiceBusyError(GatewayError):
    """Exception raised when the global rate limit is exhausted.

    The call was rejected before any network activity and is never retried
    internally. It is audited as attempt 0 with classification `RATE_LIMITED`.
    """

    def __init__(self, message: str = "Service busy, please retry later", *, trace_id: str | None = None) -> None:
        super().__init__(message)
        self.trace_id = trace_id
