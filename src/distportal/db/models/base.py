"""Base models for SQLAlchemy."""

from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class PortableJSON(TypeDecorator):
    """JSON type that uses JSONB on PostgreSQL and JSON elsewhere."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class PortableUUID(TypeDecorator):
    """UUID type that uses native UUID on PostgreSQL and String elsewhere."""

    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value
        return str(value) if isinstance(value, UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, UUID):
            return value
        return UUID(value) if value else None


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def utc_now() -> datetime:
    """Timezone-aware current time used for Python-side column defaults."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin for created_at/updated_at timestamps.

    Values are set Python-side so they are populated on the instance after a
    flush without a refresh round-trip on async sessions.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        onupdate=utc_now,
        nullable=False,
    )


def normalize_choice(value: str | Enum, choices: type[Enum], field: str = "value") -> str:
    """Canonicalize an enumerated string to its stored lower-case form.

    ``"Published"``, ``" published "`` and ``ContentStatus.PUBLISHED`` all
    normalize to ``"published"``. Spaces and hyphens become underscores so
    ``"Non-Exclusive"`` maps to ``"non_exclusive"``.

    Args:
        value: Raw value (string or member of ``choices``)
        choices: The enum whose values are the allowed canonical forms
        field: Field name used in the error message

    Returns:
        The canonical string value

    Raises:
        ValueError: If the value is not one of the allowed choices
    """
    if isinstance(value, Enum):
        value = value.value
    normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    allowed = {member.value for member in choices}
    if normalized not in allowed:
        raise ValueError(f"Invalid {field} {value!r}; expected one of {sorted(allowed)}")
    return normalized
