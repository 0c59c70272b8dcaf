"""Dictionary API gateway client.

This module provides `DictGatewayClient`, which fronts the third-party
dictionary lookup API with a global rate limit, request signing, bounded
retries and a per-attempt audit trail.

## Usage

```python
from dict_gateway.clients import create_dict_gateway_client

client = create_dict_gateway_client()
body = client.query_dict(page_num=1, page_size=10, dict_type="gender", trace_id=incoming_trace_id)
```

## Call lifecycle

1. Validate the query (`BadRequestError` on failure, nothing audited).
2. Bind the correlation scope (trace id generated if absent).
3. Ask the rate limiter for a token. On rejection write one audit row with
   attempt 0 / `RATE_LIMITED` and raise `ServiceBusyError`.
4. Dispatch attempts until success, a non-retriable failure, or the retry
   policy is exhausted. Every attempt is audited before the next decision.
5. Release the correlation scope, whatever the outcome.
"""

import logging
import time
from collections.abc import Callable
from functools import partial
from typing import Any
from urllib.parse import urlencode

import attrs
import requests
from pydantic import ValidationError

from dict_gateway.core.audit import CallAuditRecorder
from dict_gateway.core.exceptions import BadRequestError, ServiceBusyError, SignatureError, UpstreamError
from dict_gateway.core.models import PRE_DISPATCH_ATTEMPT, SERVICE_NAME, CallAttemptRecord, DictQuery
from dict_gateway.foundation.correlation import bind_correlation
from dict_gateway.foundation.exceptions import UpstreamClientError, UpstreamHTTPError, UpstreamServerError
from dict_gateway.foundation.http import (
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_READ_TIMEOUT_MS,
    create_pooled_session,
    to_timeout,
)
from dict_gateway.foundation.rate_limiter import TokenBucketRateLimiter
from dict_gateway.foundation.retry import (
    HTTP_5XX,
    RATE_LIMITED,
    TIMEOUT,
    ErrorClassifier,
    HTTPErrorClassifier,
    RetryPolicy,
)
from dict_gateway.foundation.signature import DEFAULT_TIMEZONE, generate_signature, generate_timestamp

logger = logging.getLogger(__name__)

DICT_QUERY_PATH = "/api/v1/dataapi/execute/dict/query"
HTTP_METHOD = "GET"
REQUEST_ID_HEADER = "X-Request-Id"

# Transport failures treated as transient (connect/read timeouts, refused or
# dropped connections, truncated bodies)
TRANSIENT_TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
)


class DictApiErrorClassifier(HTTPErrorClassifier):
    """Classifies dictionary API attempt failures.

    - `UpstreamServerError` (5xx): retriable, tagged `HTTP_5XX`
    - timeouts / connection errors: retriable, tagged `TIMEOUT`
    - anything else: not retriable, tagged with its class name
    """

    def is_retriable(self, exc: BaseException) -> bool:
        if isinstance(exc, UpstreamHTTPError):
            return self.is_retriable_http_status(exc.status_code)
        return isinstance(exc, TRANSIENT_TRANSPORT_ERRORS)

    def classify(self, exc: BaseException) -> str:
        if isinstance(exc, UpstreamHTTPError) and self.is_retriable_http_status(exc.status_code):
            return HTTP_5XX
        if isinstance(exc, TRANSIENT_TRANSPORT_ERRORS):
            return TIMEOUT
        return type(exc).__name__

    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        if isinstance(exc, UpstreamHTTPError):
            return {"http_status": exc.status_code, "classification": self.classify(exc)}
        return {"classification": self.classify(exc)}


def _elapsed_ms(started: float, finished: float) -> int:
    return max(0, int(round((finished - started) * 1000)))


@attrs.define(slots=True)
class DictGatewayClient:
    """Rate-limited, signed, retrying client for the dictionary API.

    Attributes:
        base_url: Upstream base URL; `DICT_QUERY_PATH` is appended.
        app_key: Application key (`AppKey` header).
        app_secret: Shared signing secret.
        rate_limiter: Global admission gate shared by every caller of this client.
        recorder: Audit recorder; one record per attempt.
        retry_policy: Attempts and backoff between them.
        connect_timeout_ms: Transport connect timeout.
        read_timeout_ms: Transport read timeout.
        timestamp_timezone: Zone used for the `Timestamp` header.
        service_name: Service name written to every audit record.
        classifier: Decides retriable vs terminal failures and their tags.
        sleep: Sleep function used for backoff.
        clock: Monotonic clock (seconds) used for attempt durations.
        timestamp_factory: Optional override producing the signing timestamp.
        session: Optional requests.Session; a pooled one is created if omitted.

    Note:
        This class is not frozen to allow session reuse and connection pooling.
        One instance is meant to be shared by all threads of a process.
    """

    base_url: str
    app_key: str
    app_secret: str = attrs.field(repr=False)
    rate_limiter: TokenBucketRateLimiter
    recorder: CallAuditRecorder
    retry_policy: RetryPolicy = attrs.field(factory=RetryPolicy)
    connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    timestamp_timezone: str = DEFAULT_TIMEZONE
    service_name: str = SERVICE_NAME
    classifier: ErrorClassifier = attrs.field(factory=DictApiErrorClassifier)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.perf_counter
    timestamp_factory: Callable[[], str] | None = None
    _session: requests.Session | None = None

    def __attrs_post_init__(self) -> None:
        if self._session is None:
            self._session = create_pooled_session()
        if self.timestamp_factory is None:
            self.timestamp_factory = partial(generate_timestamp, self.timestamp_timezone)

    @property
    def session(self) -> requests.Session:
        """Get the requests session, creating one if needed."""
        if self._session is None:
            self._session = create_pooled_session()
        return self._session

    def set_session(self, session: requests.Session) -> None:
        """Set a custom requests session for connection pooling.

        Args:
            session: Requests session to use for API calls.
        """
        self._session = session

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}{DICT_QUERY_PATH}"

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def query_dict(
        self,
        page_num: int,
        page_size: int,
        dict_type: str,
        trace_id: str | None = None,
        subject_id: str | None = None,
    ) -> Any:
        """Query one page of a dictionary.

        Args:
            page_num: 1-based page number.
            page_size: Page size, 1..100.
            dict_type: Dictionary type code, non-blank, at most 50 characters.
            trace_id: Caller's correlation id; generated when omitted.
            subject_id: Optional caller/user id bound to the correlation scope.

        Returns:
            The upstream JSON body, unmodified.

        Raises:
            BadRequestError: If the query parameters are invalid.
            ServiceBusyError: If the global rate limit rejected the call.
            UpstreamError: If the upstream failed terminally or retries ran out.
            SignatureError: If the request could not be signed.
        """
        try:
            query = DictQuery(page_num=page_num, page_size=page_size, dict_type=dict_type)
        except ValidationError as e:
            msg = f"Invalid dictionary query: {e}"
            raise BadRequestError(msg) from e
        return self.query(query, trace_id=trace_id, subject_id=subject_id)

    def query(self, query: DictQuery, *, trace_id: str | None = None, subject_id: str | None = None) -> Any:
        """Run a validated query through admission, retries and auditing.

        See `query_dict()` for return value and errors.
        """
        started = self.clock()
        with bind_correlation(trace_id, subject_id=subject_id, dict_type=query.dict_type) as ctx:
            if not self.rate_limiter.try_admit():
                self._reject(ctx.trace_id, started)
                raise ServiceBusyError(trace_id=ctx.trace_id)
            return self._call_with_retry(query, ctx.trace_id)

    def close(self) -> None:
        """Close the HTTP session and release pooled connections."""
        if self._session is not None:
            self._session.close()
            self._session = None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _reject(self, trace_id: str, started: float) -> None:
        logger.warning(
            "Dictionary query rejected by rate limiter",
            extra={"classification": RATE_LIMITED},
        )
        self.recorder.record(
            CallAttemptRecord(
                trace_id=trace_id,
                attempt=PRE_DISPATCH_ATTEMPT,
                success=False,
                duration_ms=_elapsed_ms(started, self.clock()),
                service=self.service_name,
                exception_type=RATE_LIMITED,
                exception_message="Rate limit exceeded",
            )
        )

    def _call_with_retry(self, query: DictQuery, trace_id: str) -> Any:
        retrying = self.retry_policy.build_retrying(
            classifier=self.classifier,
            logger=logger,
            sleep=self.sleep,
        )
        attempts = 0
        body: Any = None
        try:
            for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    body = self._dispatch(query, trace_id, attempts)
        except SignatureError:
            raise
        except Exception as e:
            classification = self.classifier.classify(e)
            status = e.status_code if isinstance(e, UpstreamHTTPError) else None
            msg = f"Dictionary API call failed after {attempts} attempt(s) [{classification}]: {e}"
            raise UpstreamError(msg, classification=classification, status_code=status, attempts=attempts) from e
        return body

    def _dispatch(self, query: DictQuery, trace_id: str, attempt_number: int) -> Any:
        """Run a single attempt and audit it before returning or raising."""
        params = query.to_query_params()
        query_string = urlencode(params)
        target_url = f"{self.endpoint}?{query_string}"
        status: int | None = None
        request_id: str | None = None

        started = self.clock()
        try:
            timestamp = self.timestamp_factory()  # type: ignore[misc]
            signature = generate_signature(
                HTTP_METHOD, DICT_QUERY_PATH, params, self.app_key, self.app_secret, timestamp
            )
            headers = {"AppKey": self.app_key, "Signature": signature, "Timestamp": timestamp}
            response = self.session.get(
                target_url,
                headers=headers,
                timeout=to_timeout(self.connect_timeout_ms, self.read_timeout_ms),
            )
            status = response.status_code
            request_id = response.headers.get(REQUEST_ID_HEADER)
            if status >= 500:
                raise UpstreamServerError(status, response.text)
            if not 200 <= status < 300:
                raise UpstreamClientError(status, response.text)
            # an empty 2xx body (e.g. 204) is a success with no payload
            body = response.json() if response.content.strip() else None
        except Exception as e:
            duration_ms = _elapsed_ms(started, self.clock())
            classification = self.classifier.classify(e)
            logger.error(
                "Dictionary API attempt failed",
                extra={
                    "attempt": attempt_number,
                    "classification": classification,
                    "http_status": status,
                    "duration_ms": duration_ms,
                    "error": str(e),
                },
            )
            self.recorder.record(
                CallAttemptRecord(
                    trace_id=trace_id,
                    attempt=attempt_number,
                    success=False,
                    duration_ms=duration_ms,
                    service=self.service_name,
                    request_id=request_id,
                    target_url=target_url,
                    http_method=HTTP_METHOD,
                    query_string=query_string,
                    http_status=status,
                    exception_type=classification,
                    exception_message=str(e),
                )
            )
            raise

        duration_ms = _elapsed_ms(started, self.clock())
        logger.info(
            "Dictionary API call succeeded",
            extra={"attempt": attempt_number, "http_status": status, "duration_ms": duration_ms},
        )
        self.recorder.record(
            CallAttemptRecord(
                trace_id=trace_id,
                attempt=attempt_number,
                success=True,
                duration_ms=duration_ms,
                service=self.service_name,
                request_id=request_id,
                target_url=target_url,
                http_method=HTTP_METHOD,
                query_string=query_string,
                http_status=status,
            )
        )
        return body
