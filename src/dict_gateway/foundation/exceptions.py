"""Exception classes for foundation utilities.

This module provides exception classes used by foundation components. The
per-attempt HTTP errors are raised inside a single dispatch attempt and are
classified by the retry layer; `UpstreamError` is what finally reaches the
caller.
"""


class FoundationError(Exception):
    """Base exception class for foundation-related errors."""


class UpstreamError(FoundationError):
    """Exception raised when an upstream dependency service fails.

    This exception indicates that a required external service is unavailable,
    returned an error, or failed to complete a request.

    Attributes:
        classification: Attempt classification tag of the last failure
            (e.g. "HTTP_5XX", "TIMEOUT", or an exception class name).
        status_code: HTTP status of the last failed attempt, if any.
        attempts: Number of dispatch attempts made before giving up.
    """

    def __init__(
        self,
        message: str,
        *,
        classification: str | None = None,
        status_code: int | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.classification = classification
        self.status_code = status_code
        self.attempts = attempts


class UpstreamHTTPError(FoundationError):
    """Upstream answered with a non-2xx status code.

    Attributes:
        status_code: HTTP status code returned by the upstream.
        body: Response text, kept for the audit trail.
    """

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Upstream returned HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class UpstreamServerError(UpstreamHTTPError):
    """Upstream answered with a 5xx status code (transient)."""


class UpstreamClientError(UpstreamHTTPError):
    """Upstream answered with a 4xx or other non-retriable status code."""


class SignatureError(FoundationError):
    """Request signing failed (encoding or key defect); never retried."""
