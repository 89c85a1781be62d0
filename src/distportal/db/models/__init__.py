"""Database models for the distributor portal."""

from .audit import AuditEvent, AuditEventType, AuditSeverity
from .base import Base, PortableJSON, PortableUUID, TimestampMixin, normalize_choice, utc_now
from .content import (
    Announcement,
    AnnouncementDistributor,
    ContentNotification,
    ContentStatus,
    Documentation,
    DocumentationDistributor,
    MarketingAsset,
    MarketingAssetDistributor,
    TrainingMaterial,
    TrainingMaterialDistributor,
)
from .customer import Customer, CustomerStatus, Device, DeviceStatus
from .distributor import AccountStatus, AccountType, Distributor, User, UserRole
from .document import (
    DeviceDocument,
    DocumentAction,
    DocumentHistoryEntry,
    DocumentStatus,
    DocumentType,
)
from .product import Product, ProductStatus
from .release import (
    DeviceUpdateHistory,
    ReleaseDownload,
    ReleaseNotification,
    ReleaseStatus,
    ReleaseType,
    SoftwareRelease,
    SoftwareReleaseDevice,
    SoftwareReleaseDistributor,
    TargetType,
    UpdateOutcome,
)

__all__ = [
    # Base
    "Base",
    "PortableJSON",
    "PortableUUID",
    "TimestampMixin",
    "normalize_choice",
    "utc_now",
    # Accounts
    "AccountStatus",
    "AccountType",
    "Distributor",
    "User",
    "UserRole",
    # Inventory
    "Customer",
    "CustomerStatus",
    "Device",
    "DeviceStatus",
    "DeviceDocument",
    "DocumentAction",
    "DocumentHistoryEntry",
    "DocumentStatus",
    "DocumentType",
    # Content
    "Announcement",
    "AnnouncementDistributor",
    "ContentNotification",
    "ContentStatus",
    "Documentation",
    "DocumentationDistributor",
    "MarketingAsset",
    "MarketingAssetDistributor",
    "TrainingMaterial",
    "TrainingMaterialDistributor",
    # Releases
    "DeviceUpdateHistory",
    "ReleaseDownload",
    "ReleaseNotification",
    "ReleaseStatus",
    "ReleaseType",
    "SoftwareRelease",
    "SoftwareReleaseDevice",
    "SoftwareReleaseDistributor",
    "TargetType",
    "UpdateOutcome",
    # Catalog
    "Product",
    "ProductStatus",
    # Audit
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",
]
