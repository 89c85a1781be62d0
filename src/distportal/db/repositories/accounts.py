"""Repositories for distributors and their users."""

from uuid import UUID

from sqlalchemy import or_, select

from distportal.core.exceptions import DistributorNotFoundError, UserNotFoundError
from distportal.db.models.distributor import AccountStatus, Distributor, User
from distportal.db.repositories.base import BaseRepository


class DistributorRepository(BaseRepository[Distributor, UUID]):
    """Repository for Distributor model operations."""

    model = Distributor
    not_found_error = DistributorNotFoundError

    async def search(
        self,
        *,
        status: str | None = None,
        territory: str | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Distributor]:
        """List distributors with optional filters.

        Args:
            status: Canonical status to match
            territory: Exact territory to match
            search: Case-insensitive substring of company, contact name or email
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            Distributors ordered by company name
        """
        stmt = select(Distributor)
        if status is not None:
            stmt = stmt.where(Distributor.status == status)
        if territory is not None:
            stmt = stmt.where(Distributor.territory == territory)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    Distributor.company_name.ilike(pattern),
                    Distributor.contact_name.ilike(pattern),
                    Distributor.contact_email.ilike(pattern),
                )
            )

        stmt = stmt.order_by(Distributor.company_name).limit(limit).offset(offset)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def active_ids(self) -> list[UUID]:
        """Ids of every active distributor."""
        result = await self.db.execute(
            select(Distributor.distributor_id).where(
                Distributor.status == AccountStatus.ACTIVE.value
            )
        )
        return list(result.scalars().all())


class UserRepository(BaseRepository[User, UUID]):
    """Repository for portal users."""

    model = User
    not_found_error = UserNotFoundError

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def list_for_distributor(self, distributor_id: UUID) -> list[User]:
        result = await self.db.execute(
            select(User).where(User.distributor_id == distributor_id).order_by(User.email)
        )
        return list(result.scalars().all())

    async def reachable_for_distributors(self, distributor_ids: set[UUID]) -> list[User]:
        """Users that can receive mail on behalf of the given distributors.

        Inactive users and users without an email address are excluded.
        """
        if not distributor_ids:
            return []
        result = await self.db.execute(
            select(User)
            .where(
                User.distributor_id.in_(distributor_ids),
                User.status != AccountStatus.INACTIVE.value,
                User.email != "",
            )
            .order_by(User.user_id)
        )
        return list(result.scalars().all())
