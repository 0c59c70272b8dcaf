"""Test doubles shared across the test suite."""

import json
import threading
from typing import Any

import requests

from dict_gateway.core.models import CallAttemptRecord

FIXED_TIMESTAMP = "2024-01-01 10:00:00"
BASE_URL = "http://dict.example.com"


class InMemoryCallLogStore:
    """Thread-safe list-backed `CallLogStore` for tests."""

    def __init__(self) -> None:
        self.records: list[CallAttemptRecord] = []
        self._lock = threading.Lock()

    def insert(self, record: CallAttemptRecord) -> None:
        with self._lock:
            self.records.append(record)

    def for_trace(self, trace_id: str) -> list[CallAttemptRecord]:
        with self._lock:
            return [r for r in self.records if r.trace_id == trace_id]


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(
    status_code: int,
    body: Any = None,
    *,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> requests.Response:
    """Build a real `requests.Response` with the given status and JSON body."""
    response = requests.Response()
    response.status_code = status_code
    if text is not None:
        response._content = text.encode("utf-8")
    else:
        response._content = json.dumps(body if body is not None else {}).encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response
