"""Distributor companies and their portal users."""

from .service import DistributorService, DistributorStats, UserService

__all__ = ["DistributorService", "DistributorStats", "UserService"]
