"""Administrative endpoints for internal (service) callers.

This module provides REST API endpoints for portal administration:
- POST/GET /v1/admin/distributors - Provision and list distributors
- PATCH/DELETE /v1/admin/distributors/{distributor_id} - Edit or remove one
- GET/PUT /v1/admin/content/{kind}/{content_id}/sharing - Read or replace an allow-list
- POST /v1/admin/content/{kind}/{content_id}/notify - Announce a published item by email
- POST /v1/admin/content/{kind}/notify-batch - Announce several items of one kind
- POST /v1/admin/releases - Create a draft release
- PUT /v1/admin/releases/{release_id}/targets/{list} - Replace a release allow-list
- POST /v1/admin/releases/{release_id}/publish - Publish a draft release
- POST /v1/admin/releases/{release_id}/notify - (Re-)send release notifications
- GET /v1/admin/releases/{release_id}/stats - Download and installation figures

Every endpoint requires a service credential (API key without X-User-ID).
"""

from typing import Annotated, Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.accounts import DistributorService
from distportal.api.dependencies import (
    get_app_settings,
    get_db,
    get_email_client,
    require_service_actor,
)
from distportal.api.schemas.errors import APIError
from distportal.config.settings import Settings
from distportal.core.context import RequestContext
from distportal.db.schemas.accounts import (
    DistributorCreate,
    DistributorResponse,
    DistributorUpdate,
)
from distportal.db.schemas.content import (
    BatchNotifyRequest,
    BatchNotifyResponse,
    SharingResponse,
    SharingUpdate,
)
from distportal.db.schemas.releases import (
    NotifyRequest,
    NotifyResponse,
    PublishResponse,
    ReleaseCreate,
    ReleaseResponse,
    ReleaseStatsResponse,
    TargetsResponse,
    TargetsUpdate,
)
from distportal.notifications import (
    ContentNotifier,
    EmailClient,
    NotifiableKind,
    NotificationSummary,
    ReleaseNotifier,
)
from distportal.releases import ReleaseService
from distportal.sharing import ContentKind, ContentSharingService, summarize_sharing

logger = structlog.get_logger()

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={
        401: {"model": APIError, "description": "Missing or invalid API key"},
        403: {"model": APIError, "description": "Service credential required"},
    },
)

AdminContext = Annotated[RequestContext, Depends(require_service_actor)]
Session = Annotated[AsyncSession, Depends(get_db)]


def _notify_response(summary: NotificationSummary) -> NotifyResponse:
    return NotifyResponse(
        success=summary.success,
        sent_count=summary.sent_count,
        total_recipients=summary.total_recipients,
        errors=summary.errors or None,
        message=summary.message,
    )


# =============================================================================
# Distributors
# =============================================================================


@router.post(
    "/distributors",
    response_model=DistributorResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": APIError, "description": "First user's email already registered"}},
    summary="Create a distributor",
)
async def create_distributor(
    body: DistributorCreate,
    db: Session,
    _ctx: AdminContext,
    email_client: Annotated[EmailClient, Depends(get_email_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> DistributorResponse:
    distributor = await DistributorService(db, email_client, settings).create(
        body.model_dump(exclude={"first_user", "send_invite"}),
        first_user=body.first_user.model_dump() if body.first_user else None,
        send_invite=body.send_invite,
    )
    return DistributorResponse.model_validate(distributor)


@router.get(
    "/distributors",
    response_model=list[DistributorResponse],
    summary="List distributors",
)
async def list_distributors(
    db: Session,
    _ctx: AdminContext,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    territory: str | None = None,
    search: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[DistributorResponse]:
    distributors = await DistributorService(db).search(
        status=status_filter, territory=territory, search=search, limit=limit, offset=offset
    )
    return [DistributorResponse.model_validate(d) for d in distributors]


@router.patch(
    "/distributors/{distributor_id}",
    response_model=DistributorResponse,
    responses={404: {"model": APIError}},
    summary="Update a distributor",
)
async def update_distributor(
    distributor_id: UUID,
    body: DistributorUpdate,
    db: Session,
    _ctx: AdminContext,
) -> DistributorResponse:
    distributor = await DistributorService(db).update(
        distributor_id, body.model_dump(exclude_unset=True)
    )
    return DistributorResponse.model_validate(distributor)


@router.delete(
    "/distributors/{distributor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": APIError}},
    summary="Delete a distributor and everything it owns",
)
async def delete_distributor(distributor_id: UUID, db: Session, _ctx: AdminContext) -> Response:
    await DistributorService(db).delete(distributor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Content sharing
# =============================================================================


def _sharing_response(
    kind: ContentKind, content_id: UUID, distributor_ids: list[UUID]
) -> SharingResponse:
    summary = summarize_sharing(distributor_ids)
    return SharingResponse(
        content_id=content_id,
        kind=kind.value,
        distributor_ids=distributor_ids,
        label=summary.label,
        shared_with_all=summary.is_all,
    )


@router.get(
    "/content/{kind}/{content_id}/sharing",
    response_model=SharingResponse,
    responses={404: {"model": APIError}},
    summary="Read a content allow-list",
)
async def get_sharing(
    kind: ContentKind, content_id: UUID, db: Session, _ctx: AdminContext
) -> SharingResponse:
    distributor_ids = await ContentSharingService(db).get_sharing(kind, content_id)
    return _sharing_response(kind, content_id, distributor_ids)


@router.put(
    "/content/{kind}/{content_id}/sharing",
    response_model=SharingResponse,
    responses={404: {"model": APIError}},
    summary="Replace a content allow-list",
    description="An empty list shares the item with every distributor.",
)
async def set_sharing(
    kind: ContentKind,
    content_id: UUID,
    body: SharingUpdate,
    db: Session,
    _ctx: AdminContext,
) -> SharingResponse:
    distributor_ids = await ContentSharingService(db).set_sharing(
        kind, content_id, body.distributor_ids
    )
    return _sharing_response(kind, content_id, distributor_ids)


@router.post(
    "/content/{kind}/notify-batch",
    response_model=BatchNotifyResponse,
    summary="Announce several published items",
    description=(
        "Announces each item in turn. Items that do not exist or had failed "
        "deliveries are counted as failed; the rest of the batch still runs."
    ),
)
async def notify_content_batch(
    kind: NotifiableKind,
    body: BatchNotifyRequest,
    db: Session,
    _ctx: AdminContext,
    email_client: Annotated[EmailClient, Depends(get_email_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> BatchNotifyResponse:
    batch = await ContentNotifier(db, email_client, settings).notify_many(kind, body.ids)
    return BatchNotifyResponse(sent=batch.sent, failed=batch.failed)


@router.post(
    "/content/{kind}/{content_id}/notify",
    response_model=NotifyResponse,
    response_model_exclude_none=True,
    responses={404: {"model": APIError, "description": "Item not found"}},
    summary="Announce a published item",
    description=(
        "Emails users of every active distributor that can see the item. "
        "Drafts and archived items have no recipients."
    ),
)
async def notify_content(
    kind: NotifiableKind,
    content_id: UUID,
    db: Session,
    _ctx: AdminContext,
    email_client: Annotated[EmailClient, Depends(get_email_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    body: NotifyRequest | None = None,
) -> NotifyResponse:
    only_unnotified = body.only_unnotified if body is not None else True
    summary = await ContentNotifier(db, email_client, settings).notify(
        kind, content_id, only_unnotified
    )
    return _notify_response(summary)


# =============================================================================
# Releases)
# =============================================================================


@router.post(
    "/releases",
    response_model=ReleaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft release",
)
async def create_release(body: ReleaseCreate, db: Session, ctx: AdminContext) -> ReleaseResponse:
    release = await ReleaseService(db).create(body.model_dump(), created_by=ctx.actor_id)
    return ReleaseResponse.model_validate(release)


@router.put(
    "/releases/{release_id}/targets/{target_list}",
    response_model=TargetsResponse,
    responses={404: {"model": APIError}},
    summary="Replace a release allow-list",
)
async def set_release_targets(
    release_id: UUID,
    target_list: Literal["distributors", "devices"],
    body: TargetsUpdate,
    db: Session,
    _ctx: AdminContext,
) -> TargetsResponse:
    service = ReleaseService(db)
    if target_list == "distributors":
        ids = await service.set_target_distributors(release_id, body.ids)
    else:
        ids = await service.set_target_devices(release_id, body.ids)
    release = await service.get(release_id)
    return TargetsResponse(release_id=release_id, ids=ids, target_type=release.target_type)


@router.post(
    "/releases/{release_id}/publish",
    response_model=PublishResponse,
    responses={
        404: {"model": APIError, "description": "Release not found"},
        409: {"model": APIError, "description": "Release is not a draft"},
    },
    summary="Publish a release",
)
async def publish_release(
    release_id: UUID,
    db: Session,
    _ctx: AdminContext,
    email_client: Annotated[EmailClient, Depends(get_email_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    notify: bool | None = None,
) -> PublishResponse:
    """Publish a draft. Notifications follow the release's ``notify_on_publish``
    flag unless the ``notify`` query parameter overrides it."""
    result = await ReleaseService(db, email_client, settings).publish(
        release_id, notify=notify
    )
    return PublishResponse(
        release=ReleaseResponse.model_validate(result.release),
        notification=_notify_response(result.notification) if result.notification else None,
    )


@router.post(
    "/releases/{release_id}/notify",
    response_model=NotifyResponse,
    response_model_exclude_none=True,
    responses={404: {"model": APIError, "description": "Release not found"}},
    summary="Send release notifications",
    description=(
        "Emails every entitled user. With only_unnotified (the default) users "
        "already notified for this release are skipped, so the call can be "
        "repeated safely after partial failures."
    ),
)
async def notify_release(
    release_id: UUID,
    db: Session,
    _ctx: AdminContext,
    email_client: Annotated[EmailClient, Depends(get_email_client)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    body: NotifyRequest | None = None,
) -> NotifyResponse:
    only_unnotified = body.only_unnotified if body is not None else True
    summary = await ReleaseNotifier(db, email_client, settings).notify(release_id, only_unnotified)
    return _notify_response(summary)


@router.get(
    "/releases/{release_id}/stats",
    response_model=ReleaseStatsResponse,
    responses={404: {"model": APIError, "description": "Release not found"}},
    summary="Release download and installation figures",
)
async def release_stats(
    release_id: UUID, db: Session, _ctx: AdminContext
) -> ReleaseStatsResponse:
    stats = await ReleaseService(db).stats(release_id)
    return ReleaseStatsResponse(
        release_id=release_id,
        total_downloads=stats.total_downloads,
        unique_downloads=stats.unique_downloads,
        successful_installs=stats.successful_installs,
        failed_installs=stats.failed_installs,
        rolled_back_installs=stats.rolled_back_installs,
        target_count=stats.target_count,
        install_percentage=stats.install_percentage,
    )
