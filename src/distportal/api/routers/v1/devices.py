"""Device endpoints.

This module provides REST API endpoints for installed devices:
- POST /v1/devices - Register a device at a customer site
- GET /v1/devices - Devices of the caller's distributor
- GET /v1/devices/{device_id} - Fetch one device
- GET /v1/devices/{device_id}/releases - Pending updates for a device

Portal users only reach devices of their own distributor's customers; a
device belonging to another distributor is reported as not found.
Service callers are not scoped.
"""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from distportal.api.dependencies import get_current_distributor_id, get_db, get_request_context
from distportal.api.schemas.errors import APIError
from distportal.core.context import ActorType, RequestContext
from distportal.core.exceptions import CustomerNotFoundError, DeviceNotFoundError
from distportal.db.models.customer import Device
from distportal.db.repositories.inventory import DeviceRepository
from distportal.db.schemas.inventory import DeviceCreate, DeviceResponse
from distportal.db.schemas.releases import ReleaseResponse
from distportal.inventory import CustomerService, DeviceService
from distportal.sharing import VisibilityService

logger = structlog.get_logger()

router = APIRouter(prefix="/devices", tags=["devices"])


async def _load_device(
    db: AsyncSession, ctx: RequestContext, distributor_id: UUID | None, device_id: UUID
) -> Device:
    """Fetch a device the caller may see.

    Raises:
        DeviceNotFoundError: If it does not exist or belongs to another distributor
    """
    device = await DeviceService(db).get(device_id)
    if ctx.actor_type == ActorType.HUMAN:
        owner_id = await DeviceRepository(db).owner_distributor_id(device_id)
        if distributor_id is None or owner_id != distributor_id:
            raise DeviceNotFoundError(device_id)
    return device


@router.post(
    "",
    response_model=DeviceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": APIError, "description": "Customer not found"},
        409: {"model": APIError, "description": "Serial number already registered"},
        422: {"model": APIError, "description": "Validation error"},
    },
    summary="Register a device",
)
async def create_device(
    body: DeviceCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> DeviceResponse:
    """Register a device. Serial numbers are unique across the portal."""
    if ctx.actor_type == ActorType.HUMAN:
        customer = await CustomerService(db).get(body.customer_id)
        if distributor_id is None or customer.distributor_id != distributor_id:
            raise CustomerNotFoundError(body.customer_id)

    device = await DeviceService(db).create(
        body.customer_id,
        body.model_dump(exclude={"customer_id"}, exclude_none=True),
        created_by=ctx.actor_id,
    )
    return DeviceResponse.model_validate(device)


@router.get(
    "",
    response_model=list[DeviceResponse],
    summary="List the caller's devices",
)
async def list_devices(
    db: Annotated[AsyncSession, Depends(get_db)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> list[DeviceResponse]:
    devices = await DeviceService(db).list_for_distributor(distributor_id)
    return [DeviceResponse.model_validate(d) for d in devices]


@router.get(
    "/{device_id}",
    response_model=DeviceResponse,
    responses={404: {"model": APIError, "description": "Device not found"}},
    summary="Get a device",
)
async def get_device(
    device_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> DeviceResponse:
    device = await _load_device(db, ctx, distributor_id, device_id)
    return DeviceResponse.model_validate(device)


@router.get(
    "/{device_id}/releases",
    response_model=list[ReleaseResponse],
    responses={404: {"model": APIError, "description": "Device not found"}},
    summary="List applicable updates for a device",
)
async def list_device_releases(
    device_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    distributor_id: Annotated[UUID | None, Depends(get_current_distributor_id)],
) -> list[ReleaseResponse]:
    """Published releases visible to the device that are newer than what it runs."""
    await _load_device(db, ctx, distributor_id, device_id)
    releases = await VisibilityService(db).list_releases_for_device(device_id)
    logger.debug("device_updates_listed", device_id=str(device_id), count=len(releases))
    return [ReleaseResponse.model_validate(r) for r in releases]
