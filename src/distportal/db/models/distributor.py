"""Distributor (tenant) and portal user models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin, normalize_choice


class AccountType(str, Enum):
    """Commercial relationship with a distributor."""

    EXCLUSIVE = "exclusive"
    NON_EXCLUSIVE = "non_exclusive"


class AccountStatus(str, Enum):
    """Lifecycle state shared by distributors and their users."""

    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


class UserRole(str, Enum):
    """Role of a user within their own distributor company."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class Distributor(Base, TimestampMixin):
    """Distributor company: the tenant of the portal.

    Owns users and customers. Content is scoped to distributors through
    allow-list junction tables.
    """

    __tablename__ = "distributors"

    distributor_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    territory: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountType.NON_EXCLUSIVE.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountStatus.PENDING.value
    )

    # Contact
    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_distributors_status", "status"),
        Index("idx_distributors_territory", "territory"),
    )

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, AccountStatus, key)

    @validates("account_type")
    def _normalize_account_type(self, key: str, value: str) -> str:
        return normalize_choice(value, AccountType, key)

    def __repr__(self) -> str:
        return f"<Distributor(id={self.distributor_id}, name={self.company_name})>"


class User(Base, TimestampMixin):
    """Portal user belonging to exactly one distributor."""

    __tablename__ = "users"

    user_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    distributor_id: Mapped[UUID] = mapped_column(
        PortableUUID(),
        ForeignKey("distributors.distributor_id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER.value)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountStatus.PENDING.value
    )

    invited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("idx_users_distributor", "distributor_id"),)

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    @validates("role")
    def _normalize_role(self, key: str, value: str) -> str:
        return normalize_choice(value, UserRole, key)

    @validates("status")
    def _normalize_status(self, key: str, value: str) -> str:
        return normalize_choice(value, AccountStatus, key)

    def __repr__(self) -> str:
        return f"<User(id={self.user_id}, email={self.email})>"
