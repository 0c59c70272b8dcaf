"""Domain models for gateway operations.

- `DictQuery`: validated query for the dictionary API (Pydantic).
- `CallAttemptRecord`: one audit row per dispatch attempt or pre-dispatch
  rejection (attrs, immutable).

## Attempt numbering

Dispatched attempts are numbered from 1 and strictly increase within one
logical call. Attempt 0 means the call was rejected before dispatch (rate
limited); such rows carry no target URL, query string or HTTP status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import attrs
from pydantic import BaseModel, ConfigDict, Field, field_validator

SERVICE_NAME = "DICT_QUERY"
PRE_DISPATCH_ATTEMPT = 0
ID_MAX_LENGTH = 255


class DictQuery(BaseModel):
    """Query for one page of dictionary entries.

    Attributes:
        page_num: 1-based page number (wire name `pageNum`).
        page_size: Page size, 1..100 (wire name `pageSize`).
        dict_type: Dictionary type code, non-blank, at most 50 characters
            (wire name `dictType`).

    Example:
        ```python
        DictQuery(page_num=1, page_size=10, dict_type="gender")
        DictQuery.model_validate({"pageNum": 1, "pageSize": 10, "dictType": "gender"})
        ```
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page_num: int = Field(alias="pageNum", ge=1, description="Page number, >= 1")
    page_size: int = Field(alias="pageSize", ge=1, le=100, description="Page size, 1..100")
    dict_type: str = Field(alias="dictType", min_length=1, max_length=50, description="Dictionary type")

    @field_validator("dict_type")
    @classmethod
    def _dict_type_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("dictType must not be blank")
        return value

    def to_query_params(self) -> dict[str, Any]:
        """Return the upstream query parameters in wire order."""
        return {"pageNum": self.page_num, "pageSize": self.page_size, "dictType": self.dict_type}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clip_id(value: str | None) -> str | None:
    return value[:ID_MAX_LENGTH] if value is not None else None


@attrs.define(frozen=True, slots=True)
class CallAttemptRecord:
    """Audit record for a single dispatch attempt or pre-dispatch rejection.

    Attributes:
        trace_id: Correlation id of the logical call.
        attempt: 1-based attempt number; 0 for rejections before dispatch.
        success: Whether the attempt produced the caller's result.
        duration_ms: Time spent in the dispatch itself (backoff excluded).
        service: Target service name.
        request_id: Upstream-issued request id, if the response carried one.
            Ids longer than `ID_MAX_LENGTH` are clipped, as is `trace_id`.
        target_url: Full URL dispatched to; None when never dispatched.
        http_method: HTTP method used.
        query_string: Canonical query string sent upstream.
        http_status: Upstream status code; None on transport failure.
        exception_type: Classification tag (`RATE_LIMITED`, `HTTP_5XX`,
            `TIMEOUT` or an exception class name).
        exception_message: Failure detail, possibly truncated.
        created_at: When the record was created (UTC).
    """

    trace_id: str = attrs.field(converter=_clip_id)
    attempt: int
    success: bool
    duration_ms: int
    service: str = SERVICE_NAME
    request_id: str | None = attrs.field(default=None, converter=_clip_id)
    target_url: str | None = None
    http_method: str | None = None
    query_string: str | None = None
    http_status: int | None = None
    exception_type: str | None = None
    exception_message: str | None = None
    created_at: datetime = attrs.field(factory=_utcnow)

    @property
    def dispatched(self) -> bool:
        return self.attempt != PRE_DISPATCH_ATTEMPT

    def truncated(self, max_length: int) -> CallAttemptRecord:
        """Return a copy whose exception message is at most `max_length` characters."""
        if self.exception_message is None or len(self.exception_message) <= max_length:
            return self
        return attrs.evolve(self, exception_message=self.exception_message[:max_length])
