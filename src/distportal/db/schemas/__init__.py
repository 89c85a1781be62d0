"""Pydantic schemas for API validation."""

from .accounts import (
    DistributorCreate,
    DistributorResponse,
    DistributorUpdate,
    FirstUserInput,
    UserInvite,
    UserResponse,
)
from .content import (
    BatchNotifyRequest,
    BatchNotifyResponse,
    ContentItemResponse,
    SharingResponse,
    SharingUpdate,
)
from .inventory import DeviceCreate, DeviceResponse, DeviceUpdate
from .releases import (
    DownloadResponse,
    NotifyRequest,
    NotifyResponse,
    PendingUpdatesResponse,
    PublishResponse,
    ReleaseCreate,
    ReleaseResponse,
    ReleaseStatsResponse,
    TargetsResponse,
    TargetsUpdate,
)

__all__ = [
    "BatchNotifyRequest",
    "BatchNotifyResponse",
    "ContentItemResponse",
    "DeviceCreate",
    "DeviceResponse",
    "DeviceUpdate",
    "DistributorCreate",
    "DistributorResponse",
    "DistributorUpdate",
    "DownloadResponse",
    "FirstUserInput",
    "NotifyRequest",
    "NotifyResponse",
    "PendingUpdatesResponse",
    "PublishResponse",
    "ReleaseCreate",
    "ReleaseResponse",
    "ReleaseStatsResponse",
    "SharingResponse",
    "SharingUpdate",
    "TargetsResponse",
    "TargetsUpdate",
    "UserInvite",
    "UserResponse",
]
