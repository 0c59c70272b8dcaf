"""Best-effort audit trail for gateway calls.

`CallAuditRecorder.record()` writes one `CallAttemptRecord` through an
insert-only `CallLogStore`. It never raises: a store failure is logged on the
`dict_gateway.audit` logger and dropped, so the call being audited keeps its
own outcome.
"""

import logging
from typing import Protocol, runtime_checkable

import attrs

from dict_gateway.core.models import CallAttemptRecord

logger = logging.getLogger("dict_gateway.audit")

DEFAULT_MESSAGE_MAX_LENGTH = 1000


@runtime_checkable
class CallLogStore(Protocol):
    """Append-only sink for audit records."""

    def insert(self, record: CallAttemptRecord) -> None:
        """Persist one record. May raise on any storage failure."""
        ...


@attrs.define(slots=True)
class CallAuditRecorder:
    """Records gateway attempts without ever failing the caller.

    Attributes:
        store: Insert-only audit sink.
        message_max_length: Exception messages longer than this are truncated.
    """

    store: CallLogStore
    message_max_length: int = DEFAULT_MESSAGE_MAX_LENGTH

    def record(self, record: CallAttemptRecord) -> None:
        """Persist `record`; failures are logged and discarded."""
        try:
            self.store.insert(record.truncated(self.message_max_length))
        except Exception:
            logger.exception(
                "Failed to save external call log",
                extra={
                    "audit_trace_id": record.trace_id,
                    "audit_attempt": record.attempt,
                    "audit_exception_type": record.exception_type,
                },
            )
