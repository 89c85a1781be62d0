"""Distributor and user account management."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.config.settings import Settings, get_settings
from distportal.core.audit import AuditLogger
from distportal.core.exceptions import DuplicateEmailError
from distportal.db.models.audit import AuditEventType
from distportal.db.models.customer import Customer, Device
from distportal.db.models.distributor import AccountStatus, Distributor, User, UserRole
from distportal.db.models.document import DeviceDocument
from distportal.db.repositories.accounts import DistributorRepository, UserRepository
from distportal.notifications.email import EmailClient
from distportal.notifications.templates import invitation_html, invitation_subject
from distportal.utils.exceptions import EmailDeliveryError

logger = structlog.get_logger()

_DISTRIBUTOR_FIELDS = {
    "company_name",
    "territory",
    "account_type",
    "status",
    "contact_name",
    "contact_email",
    "contact_phone",
    "country",
    "notes",
}
_USER_FIELDS = {"full_name", "role", "status"}


@dataclass
class DistributorStats:
    """Distributor counts by account status."""

    total: int = 0
    active: int = 0
    pending: int = 0
    inactive: int = 0


class DistributorService:
    """Provisioning and lifecycle of distributor companies."""

    def __init__(
        self,
        db: AsyncSession,
        email_client: EmailClient | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.distributors = DistributorRepository(db)
        self.users = UserService(db, email_client, settings)
        self.audit = AuditLogger(db)

    async def get(self, distributor_id: UUID) -> Distributor:
        return await self.distributors.get_or_raise(distributor_id)

    async def search(
        self,
        *,
        status: str | None = None,
        territory: str | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Distributor]:
        return await self.distributors.search(
            status=status, territory=territory, search=search, limit=limit, offset=offset
        )

    async def create(
        self,
        fields: dict[str, Any],
        *,
        first_user: dict[str, Any] | None = None,
        send_invite: bool = False,
    ) -> Distributor:
        """Create a distributor, optionally together with its first user.

        The first user becomes the company admin. Its email is checked before
        anything is written, so a duplicate leaves no half-created distributor.

        Args:
            fields: Distributor attributes
            first_user: Optional ``email``/``full_name`` of the first user
            send_invite: Email an invitation to the first user

        Raises:
            DuplicateEmailError: If the first user's email is already registered
        """
        if first_user is not None:
            await self.users.ensure_email_available(first_user["email"])

        distributor = Distributor(
            **{k: v for k, v in fields.items() if k in _DISTRIBUTOR_FIELDS}
        )
        await self.distributors.create(distributor)

        if first_user is not None:
            await self.users.invite(
                distributor.distributor_id,
                email=first_user["email"],
                full_name=first_user.get("full_name"),
                role=UserRole.ADMIN,
                send_invite=send_invite,
            )

        await self.audit.log_event(
            AuditEventType.DISTRIBUTOR_CREATED,
            {"company_name": distributor.company_name, "with_user": first_user is not None},
            distributor_id=distributor.distributor_id,
            resource_type="distributor",
            resource_id=str(distributor.distributor_id),
        )
        logger.info(
            "distributor_created",
            distributor_id=str(distributor.distributor_id),
            company_name=distributor.company_name,
        )
        return distributor

    async def update(self, distributor_id: UUID, updates: dict[str, Any]) -> Distributor:
        """Apply attribute changes; unknown and unset fields are ignored."""
        distributor = await self.distributors.get_or_raise(distributor_id)
        changes = {k: v for k, v in updates.items() if k in _DISTRIBUTOR_FIELDS and v is not None}
        await self.distributors.update(distributor, changes)

        await self.audit.log_event(
            AuditEventType.DISTRIBUTOR_UPDATED,
            {"fields": sorted(changes)},
            distributor_id=distributor_id,
            resource_type="distributor",
            resource_id=str(distributor_id),
        )
        return distributor

    async def activate(self, distributor_id: UUID) -> Distributor:
        return await self.update(distributor_id, {"status": AccountStatus.ACTIVE})

    async def deactivate(self, distributor_id: UUID) -> Distributor:
        return await self.update(distributor_id, {"status": AccountStatus.INACTIVE})

    async def delete(self, distributor_id: UUID) -> None:
        """Delete a distributor with its users, customers, devices and documents.

        Dependents are removed explicitly, children first, so the cascade
        does not depend on database-level foreign key enforcement.
        """
        distributor = await self.distributors.get_or_raise(distributor_id)

        customer_ids = select(Customer.customer_id).where(
            Customer.distributor_id == distributor_id
        )
        device_ids = select(Device.device_id).where(Device.customer_id.in_(customer_ids))

        await self.db.execute(
            delete(DeviceDocument).where(DeviceDocument.device_id.in_(device_ids))
        )
        await self.db.execute(delete(Device).where(Device.customer_id.in_(customer_ids)))
        await self.db.execute(delete(Customer).where(Customer.distributor_id == distributor_id))
        await self.db.execute(delete(User).where(User.distributor_id == distributor_id))
        await self.distributors.delete(distributor)

        await self.audit.log_event(
            AuditEventType.DISTRIBUTOR_DELETED,
            {"company_name": distributor.company_name},
            distributor_id=distributor_id,
            resource_type="distributor",
            resource_id=str(distributor_id),
        )
        logger.info("distributor_deleted", distributor_id=str(distributor_id))

    async def stats(self) -> DistributorStats:
        counts = await self.distributors.count_by("status")
        return DistributorStats(
            total=sum(counts.values()),
            active=counts.get(AccountStatus.ACTIVE.value, 0),
            pending=counts.get(AccountStatus.PENDING.value, 0),
            inactive=counts.get(AccountStatus.INACTIVE.value, 0),
        )


class UserService:
    """Users of a distributor company."""

    def __init__(
        self,
        db: AsyncSession,
        email_client: EmailClient | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.email = email_client
        self.settings = settings or get_settings()
        self.users = UserRepository(db)
        self.distributors = DistributorRepository(db)
        self.audit = AuditLogger(db)

    async def ensure_email_available(self, email: str) -> None:
        """Raise DuplicateEmailError if the address is already registered."""
        if await self.users.get_by_email(email) is not None:
            raise DuplicateEmailError(email.strip().lower())

    async def list_for_distributor(self, distributor_id: UUID) -> list[User]:
        await self.distributors.get_or_raise(distributor_id)
        return await self.users.list_for_distributor(distributor_id)

    async def invite(
        self,
        distributor_id: UUID,
        *,
        email: str,
        full_name: str | None = None,
        role: UserRole | str = UserRole.USER,
        send_invite: bool = True,
    ) -> User:
        """Add a user to a distributor, optionally emailing an invitation.

        A failed invitation email is logged and leaves ``invited_at`` unset;
        the user still exists and can be re-invited.

        Raises:
            DistributorNotFoundError: If the distributor does not exist
            DuplicateEmailError: If the email is already registered
        """
        distributor = await self.distributors.get_or_raise(distributor_id)
        await self.ensure_email_available(email)

        user = User(
            distributor_id=distributor_id,
            email=email,
            full_name=full_name,
            role=role,
            status=AccountStatus.PENDING,
        )
        await self.users.create(user)

        if send_invite:
            await self._send_invitation(user, distributor)

        await self.audit.log_event(
            AuditEventType.USER_INVITED,
            {
                "email": user.email,
                "role": user.role,
                "invitation_sent": user.invited_at is not None,
            },
            distributor_id=distributor_id,
            resource_type="user",
            resource_id=str(user.user_id),
        )
        logger.info(
            "user_invited",
            user_id=str(user.user_id),
            distributor_id=str(distributor_id),
            invitation_sent=user.invited_at is not None,
        )
        return user

    async def resend_invitation(self, user_id: UUID) -> User:
        user = await self.users.get_or_raise(user_id)
        distributor = await self.distributors.get_or_raise(user.distributor_id)
        await self._send_invitation(user, distributor)
        return user

    async def _send_invitation(self, user: User, distributor: Distributor) -> None:
        if self.email is None:
            logger.warning("user_invitation_skipped", user_id=str(user.user_id), reason="no_client")
            return

        html = invitation_html(
            user.full_name or user.email, distributor.company_name, self.settings.portal_base_url
        )
        try:
            result = await self.email.send(
                user.email, invitation_subject(distributor.company_name), html
            )
        except EmailDeliveryError as exc:
            logger.warning("user_invitation_failed", user_id=str(user.user_id), error=str(exc))
            return
        if not result.ok:
            logger.warning(
                "user_invitation_failed", user_id=str(user.user_id), error=result.error
            )
            return

        user.invited_at = datetime.now(UTC)
        user.status = AccountStatus.PENDING
        await self.db.flush()

    async def update(self, user_id: UUID, updates: dict[str, Any]) -> User:
        user = await self.users.get_or_raise(user_id)
        changes = {k: v for k, v in updates.items() if k in _USER_FIELDS and v is not None}
        await self.users.update(user, changes)

        await self.audit.log_event(
            AuditEventType.USER_UPDATED,
            {"fields": sorted(changes)},
            distributor_id=user.distributor_id,
            resource_type="user",
            resource_id=str(user_id),
        )
        return user

    async def delete(self, user_id: UUID) -> None:
        """Hard delete a user. Notification markers keep their email snapshot."""
        user = await self.users.get_or_raise(user_id)
        distributor_id = user.distributor_id
        await self.users.delete(user)

        await self.audit.log_event(
            AuditEventType.USER_DELETED,
            {"email": user.email},
            distributor_id=distributor_id,
            resource_type="user",
            resource_id=str(user_id),
        )
        logger.info("user_deleted", user_id=str(user_id), distributor_id=str(distributor_id))

    async def record_login(self, user_id: UUID) -> User:
        """Stamp the last login time; a pending user becomes active on first login."""
        user = await self.users.get_or_raise(user_id)
        user.last_login_at = datetime.now(UTC)
        if user.status == AccountStatus.PENDING.value:
            user.status = AccountStatus.ACTIVE
        await self.db.flush()

        await self.audit.log_event(
            AuditEventType.USER_LOGIN,
            {},
            distributor_id=user.distributor_id,
            resource_type="user",
            resource_id=str(user_id),
        )
        return user
