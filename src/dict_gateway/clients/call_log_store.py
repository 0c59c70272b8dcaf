"""SQLAlchemy ORM and insert-only store for the `external_call_log` table.

## Usage

```python
from dict_gateway.clients.call_log_store import SqlAlchemyCallLogStore

store = SqlAlchemyCallLogStore.from_url("postgresql+psycopg://localhost:5432/gateway")
store.create_schema()
store.insert(record)
```

The store only ever inserts; rows are never updated or deleted here.
"""

import logging
from datetime import datetime, timezone

import attrs
from sqlalchemy import BigInteger, Boolean, DateTime, Engine, Integer, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from dict_gateway.core.models import ID_MAX_LENGTH, CallAttemptRecord

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """The base class for all declarative ORM models."""


class ExternalCallLog(Base):
    """Declarative model of the `external_call_log` table."""

    __tablename__ = "external_call_log"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    trace_id: Mapped[str] = mapped_column(String(ID_MAX_LENGTH), nullable=False, index=True)
    request_id: Mapped[str | None] = mapped_column(String(ID_MAX_LENGTH))
    service: Mapped[str] = mapped_column(String(64), nullable=False)
    target_url: Mapped[str | None] = mapped_column(String(2048))
    http_method: Mapped[str | None] = mapped_column(String(16))
    query_string: Mapped[str | None] = mapped_column(Text)
    http_status: Mapped[int | None] = mapped_column(Integer)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    attempt: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    exception_type: Mapped[str | None] = mapped_column(String(128))
    exception_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f'ExternalCallLog(id={self.id}, trace_id="{self.trace_id}", attempt={self.attempt}, '
            f"success={self.success}, http_status={self.http_status}, exception_type={self.exception_type})"
        )

    @classmethod
    def from_record(cls, record: CallAttemptRecord) -> "ExternalCallLog":
        return cls(
            trace_id=record.trace_id,
            request_id=record.request_id,
            service=record.service,
            target_url=record.target_url,
            http_method=record.http_method,
            query_string=record.query_string,
            http_status=record.http_status,
            success=record.success,
            attempt=record.attempt,
            duration_ms=record.duration_ms,
            exception_type=record.exception_type,
            exception_message=record.exception_message,
            created_at=_as_utc(record.created_at),
        )

    def to_record(self) -> CallAttemptRecord:
        return CallAttemptRecord(
            trace_id=self.trace_id,
            attempt=self.attempt,
            success=self.success,
            duration_ms=self.duration_ms,
            service=self.service,
            request_id=self.request_id,
            target_url=self.target_url,
            http_method=self.http_method,
            query_string=self.query_string,
            http_status=self.http_status,
            exception_type=self.exception_type,
            exception_message=self.exception_message,
            created_at=_as_utc(self.created_at),
        )


def _as_utc(value: datetime) -> datetime:
    # rows are written in UTC; SQLite drops the offset on DateTime(timezone=True)
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def create_audit_engine(url: str) -> Engine:
    """Create an engine for the audit database.

    In-memory SQLite URLs share one connection across threads so that every
    session sees the same database.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


@attrs.define(slots=True)
class SqlAlchemyCallLogStore:
    """Insert-only `CallLogStore` backed by SQLAlchemy.

    Attributes:
        engine: SQLAlchemy engine for the audit database.
    """

    engine: Engine
    _session_factory: sessionmaker = attrs.field(init=False)

    def __attrs_post_init__(self) -> None:
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> "SqlAlchemyCallLogStore":
        return cls(engine=create_audit_engine(url))

    def create_schema(self) -> None:
        """Create the `external_call_log` table if it does not exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Audit schema ready", extra={"table": ExternalCallLog.__tablename__})

    def insert(self, record: CallAttemptRecord) -> None:
        """Insert one row in its own short transaction.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: On any database failure.
        """
        with self._session_factory.begin() as session:
            session.add(ExternalCallLog.from_record(record))

    def fetch_by_trace_id(self, trace_id: str) -> list[CallAttemptRecord]:
        """Return the records of one logical call ordered by attempt."""
        stmt = (
            select(ExternalCallLog)
            .where(ExternalCallLog.trace_id == trace_id)
            .order_by(ExternalCallLog.attempt, ExternalCallLog.id)
        )
        with self._session_factory() as session:
            return [row.to_record() for row in session.scalars(stmt)]

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()
