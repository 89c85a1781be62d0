"""Software release endpoints for portal users.

- GET /v1/releases/available - Published releases visible to the caller's distributor
- GET /v1/releases/pending-updates - Count of the distributor's devices with pending updates
- POST /v1/releases/{release_id}/downloads - Log a download of a release file
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.api.dependencies import (
    get_current_distributor_id,
    get_db,
    get_request_context,
)
from distportal.api.schemas.errors import APIError
from distportal.core.context import ActorType, RequestContext
from distportal.db.schemas.releases import (
    DownloadResponse,
    PendingUpdatesResponse,
    ReleaseResponse,
)
from distportal.releases import ReleaseService
from distportal.sharing import VisibilityService

router = APIRouter(prefix="/releases", tags=["releases"])


@router.get(
    "/available",
    response_model=list[ReleaseResponse],
    responses={401: {"model": APIError}},
    summary="List available releases",
)
async def list_available_releases(
    db: Annotated[AsyncSession, Depends(get_db)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> list[ReleaseResponse]:
    """Releases targeted at the caller's distributor, at one of its devices,
    or at everyone, newest release date first."""
    releases = await VisibilityService(db).list_visible_releases(distributor_id)
    return [ReleaseResponse.model_validate(r) for r in releases]


@router.get(
    "/pending-updates",
    response_model=PendingUpdatesResponse,
    responses={401: {"model": APIError}},
    summary="Count devices with pending updates",
)
async def pending_updates(
    db: Annotated[AsyncSession, Depends(get_db)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> PendingUpdatesResponse:
    count = await VisibilityService(db).pending_updates_count(distributor_id)
    return PendingUpdatesResponse(count=count)


@router.post(
    "/{release_id}/downloads",
    response_model=DownloadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": APIError},
        404: {"model": APIError, "description": "Release not available to the caller"},
    },
    summary="Log a release download",
)
async def log_download(
    release_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> DownloadResponse:
    user_id = ctx.actor_id if ctx.actor_type == ActorType.HUMAN else None
    download = await ReleaseService(db).record_download(
        release_id, user_id=user_id, distributor_id=distributor_id
    )
    return DownloadResponse.model_validate(download)
