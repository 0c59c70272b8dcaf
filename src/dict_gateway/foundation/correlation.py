"""Request-scoped correlation (trace id) context.

Each logical gateway call binds a trace id, an optional subject id and an
optional payload into a `ContextVar`. The binding is returned as a handle that
is also a context manager, so release happens on every exit path:

```python
from dict_gateway.foundation.correlation import bind_correlation, current_trace_id

with bind_correlation(trace_id=incoming_id, subject_id="user-42") as ctx:
    logger.info("calling upstream")  # log records carry ctx.trace_id
    ...
assert current_trace_id() is None
```

Release resets the ContextVar token, which restores whatever was bound before
(normally nothing). Pooled threads therefore never carry a previous call's
trace id into the next call.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from contextvars import ContextVar, Token
from types import MappingProxyType, TracebackType
from typing import Any

import attrs


@attrs.define(frozen=True, slots=True)
class CorrelationScope:
    """Values bound for one logical call."""

    trace_id: str
    subject_id: str | None = None
    payload: Mapping[str, Any] = attrs.field(factory=lambda: MappingProxyType({}))


MAX_TRACE_ID_LENGTH = 255

_current_scope: ContextVar[CorrelationScope | None] = ContextVar("dict_gateway_correlation", default=None)


def new_trace_id() -> str:
    """Generate a fresh trace id."""
    return str(uuid.uuid4())


@attrs.define(slots=True)
class CorrelationContext:
    """Disposable handle for a bound correlation scope.

    Attributes:
        scope: The values bound for this call.
    """

    scope: CorrelationScope
    _token: Token[CorrelationScope | None] | None

    @property
    def trace_id(self) -> str:
        return self.scope.trace_id

    @property
    def subject_id(self) -> str | None:
        return self.scope.subject_id

    @property
    def released(self) -> bool:
        return self._token is None

    def release(self) -> None:
        """Detach the scope from the current context. Safe to call twice.

        Raises:
            RuntimeError: If called from a context other than the one that
                bound the scope. The handle stays bound in that case.
        """
        if self._token is None:
            return
        try:
            _current_scope.reset(self._token)
        except ValueError as e:
            raise RuntimeError("Correlation scope must be released in the context that bound it") from e
        self._token = None

    def __enter__(self) -> "CorrelationContext":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def bind_correlation(
    trace_id: str | None = None,
    subject_id: str | None = None,
    **payload: Any,
) -> CorrelationContext:
    """Bind a correlation scope to the current thread/task context.

    Args:
        trace_id: Caller-supplied trace id. A UUID4 is generated when None or blank;
            longer ids are clipped to `MAX_TRACE_ID_LENGTH` characters.
        subject_id: Optional caller/user identifier.
        **payload: Request-scoped values needed downstream.

    Returns:
        Handle whose `trace_id` is the effective trace id. Use it as a context
        manager (or call `release()` in a `finally` block).
    """
    effective = trace_id.strip()[:MAX_TRACE_ID_LENGTH] if trace_id and trace_id.strip() else new_trace_id()
    scope = CorrelationScope(
        trace_id=effective,
        subject_id=subject_id,
        payload=MappingProxyType(dict(payload)),
    )
    token = _current_scope.set(scope)
    return CorrelationContext(scope=scope, token=token)


def current_scope() -> CorrelationScope | None:
    return _current_scope.get()


def current_trace_id() -> str | None:
    """Return the trace id bound to the current context, if any."""
    scope = _current_scope.get()
    return scope.trace_id if scope is not None else None


def current_subject_id() -> str | None:
    scope = _current_scope.get()
    return scope.subject_id if scope is not None else None


def current_payload() -> Mapping[str, Any]:
    scope = _current_scope.get()
    return scope.payload if scope is not None else MappingProxyType({})


class CorrelationFilter(logging.Filter):
    """Logging filter that stamps `trace_id` and `subject_id` on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        scope = _current_scope.get()
        if scope is not None:
            if not hasattr(record, "trace_id"):
                record.trace_id = scope.trace_id
            if scope.subject_id is not None and not hasattr(record, "subject_id"):
                record.subject_id = scope.subject_id
        return True
