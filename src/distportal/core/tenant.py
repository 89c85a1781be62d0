"""Tenant resolution: which distributor owns a calling principal."""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.db.models.distributor import User

logger = structlog.get_logger()


class TenantResolver:
    """Maps an authenticated principal to its owning distributor.

    A principal with no user profile resolves to ``None``. Callers treat
    ``None`` as "no entitlements" and return empty results; it is never an
    error and never widens access.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_distributor_id(self, user_id: UUID | None) -> UUID | None:
        """Return the distributor id owning ``user_id``, or None.

        Args:
            user_id: Calling principal; None for anonymous/service calls

        Returns:
            Owning distributor id, or None when the principal has no profile
        """
        if user_id is None:
            return None

        result = await self.db.execute(
            select(User.distributor_id).where(User.user_id == user_id)
        )
        distributor_id = result.scalar_one_or_none()

        if distributor_id is None:
            logger.debug("tenant_unresolved", user_id=str(user_id))
        return distributor_id
