"""Repository layer for database access."""

from .accounts import DistributorRepository, UserRepository
from .base import BaseRepository
from .catalog import ProductRepository
from .content import ContentNotificationRepository
from .inventory import CustomerRepository, DeviceRepository, DocumentRepository
from .releases import (
    DeviceUpdateRepository,
    DownloadRepository,
    NotificationRepository,
    ReleaseRepository,
)

__all__ = [
    "BaseRepository",
    "ContentNotificationRepository",
    "CustomerRepository",
    "DeviceRepository",
    "DeviceUpdateRepository",
    "DistributorRepository",
    "DocumentRepository",
    "DownloadRepository",
    "NotificationRepository",
    "ProductRepository",
    "ReleaseRepository",
    "UserRepository",
]
