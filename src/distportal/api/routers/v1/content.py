"""Shareable content endpoints for portal users.

- GET /v1/content/{kind} - Published content visible to the caller's distributor
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.api.dependencies import get_current_distributor_id, get_db
from distportal.api.schemas.errors import APIError
from distportal.db.models.base import Base
from distportal.db.schemas.content import ContentItemResponse
from distportal.sharing import ContentBinding, ContentKind, VisibilityService, binding_for

router = APIRouter(prefix="/content", tags=["content"])

# Never exposed to distributors
_HIDDEN_FIELDS = {"internal_notes", "created_by", "status", "created_at", "updated_at"}


def content_item_response(binding: ContentBinding, item: Base) -> ContentItemResponse:
    """Flatten any content kind into the common response shape."""
    attributes: dict[str, Any] = {
        attr.key: getattr(item, attr.key)
        for attr in inspect(item).mapper.column_attrs
        if attr.key not in _HIDDEN_FIELDS and attr.key not in (binding.key, "title", "name")
    }
    return ContentItemResponse(
        id=binding.identify(item),
        kind=binding.kind.value,
        title=getattr(item, "title", None) or getattr(item, "name", ""),
        status=item.status,
        created_at=item.created_at,
        attributes=attributes,
    )


@router.get(
    "/{kind}",
    response_model=list[ContentItemResponse],
    responses={401: {"model": APIError}},
    summary="List visible content",
    description=(
        "Published items of a kind the caller's distributor may see. Items with "
        "no allow-list are visible to everyone; callers without a distributor "
        "see nothing."
    ),
)
async def list_content(
    kind: ContentKind,
    db: Annotated[AsyncSession, Depends(get_db)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> list[ContentItemResponse]:
    binding = binding_for(kind)
    items = await VisibilityService(db).list_visible(kind, distributor_id)
    return [content_item_response(binding, item) for item in items]
