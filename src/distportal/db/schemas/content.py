"""Pydantic schemas for shareable content and allow-list API validation."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ContentItemResponse(BaseModel):
    """A shareable content item of any kind."""

    id: UUID
    kind: str
    title: str
    status: str
    created_at: datetime
    attributes: dict[str, Any] = Field(default_factory=dict)


class SharingUpdate(BaseModel):
    """Replacement allow-list; an empty list shares the item with everyone."""

    distributor_ids: list[UUID] = Field(default_factory=list)


class SharingResponse(BaseModel):
    content_id: UUID
    kind: str
    distributor_ids: list[UUID]
    label: str
    shared_with_all: bool


class BatchNotifyRequest(BaseModel):
    """Items of one kind to announce in a single call."""

    ids: list[UUID] = Field(..., min_length=1, max_length=200)


class BatchNotifyResponse(BaseModel):
    """Items announced without failures, and items that failed or were not found."""

    sent: int
    failed: int
