"""Pydantic schemas for release and notification API validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from distportal.db.models.base import normalize_choice
from distportal.db.models.release import ReleaseType


class ReleaseCreate(BaseModel):
    """Schema for creating a draft release."""

    name: str = Field(..., min_length=1, max_length=255)
    version: str = Field(..., min_length=1, max_length=50)
    release_type: str = ReleaseType.SOFTWARE.value
    product_id: UUID | None = None
    product_name: str | None = Field(None, max_length=255)
    file_url: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int | None = Field(None, ge=0)
    checksum: str | None = Field(None, max_length=128)
    description: str | None = None
    release_notes: str | None = None
    changelog: str | None = None
    min_previous_version: str | None = Field(None, max_length=50)
    is_mandatory: bool = False
    notify_on_publish: bool = True

    @field_validator("release_type")
    @classmethod
    def validate_release_type(cls, v: str) -> str:
        return normalize_choice(v, ReleaseType, "release_type")


class ReleaseResponse(BaseModel):
    release_id: UUID
    name: str
    version: str
    release_type: str
    product_id: UUID | None
    product_name: str | None
    file_url: str
    file_name: str
    file_size: int | None
    release_notes: str | None
    target_type: str
    is_mandatory: bool
    status: str
    published_at: datetime | None
    release_date: datetime

    model_config = {"from_attributes": True}


class TargetsUpdate(BaseModel):
    """Replacement allow-list; an empty list removes every row."""

    ids: list[UUID] = Field(default_factory=list)


class TargetsResponse(BaseModel):
    release_id: UUID
    ids: list[UUID]
    target_type: str


class NotifyRequest(BaseModel):
    """Body of a notification trigger."""

    only_unnotified: bool = True


class NotifyResponse(BaseModel):
    """Summary of a notification batch.

    ``errors`` is omitted when every delivery succeeded.
    """

    success: bool
    sent_count: int
    total_recipients: int
    errors: list[str] | None = None
    message: str | None = None


class PublishResponse(BaseModel):
    release: ReleaseResponse
    notification: NotifyResponse | None = None


class ReleaseStatsResponse(BaseModel):
    """Download and installation figures for one release."""

    release_id: UUID
    total_downloads: int
    unique_downloads: int
    successful_installs: int
    failed_installs: int
    rolled_back_installs: int
    target_count: int
    install_percentage: int


class DownloadResponse(BaseModel):
    download_id: UUID
    release_id: UUID
    downloaded_at: datetime

    model_config = {"from_attributes": True}


class PendingUpdatesResponse(BaseModel):
    """Active devices of the caller's distributor with at least one pending update."""

    count: int
