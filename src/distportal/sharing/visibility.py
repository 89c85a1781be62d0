"""Allow-list visibility rules.

These functions hold no state and touch no database. Callers load the
allow-list rows and pass them in together with the tenant, which is always
an explicit argument. A tenant of ``None`` means the principal has no
distributor and sees nothing.

Rules:
    - An item with no allow-list rows is visible to every tenant.
    - An item with rows is visible to exactly the listed tenants.
    - Releases may also be allow-listed per device. A tenant sees a release
      if it is listed directly, if one of its devices is listed, or if
      neither list has rows and the release targets everyone.
"""

from collections.abc import Callable, Collection, Hashable, Iterable, Mapping
from typing import TypeVar
from uuid import UUID

from distportal.db.models.release import TargetType
from distportal.inventory.versions import is_newer

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def is_visible(allowed: Collection[UUID], tenant_id: UUID | None) -> bool:
    """Whether one item with the given allow-list is visible to a tenant."""
    if tenant_id is None:
        return False
    return not allowed or tenant_id in allowed


def resolve_visible(
    items: Iterable[T],
    restrictions: Mapping[K, Collection[UUID]],
    tenant_id: UUID | None,
    key: Callable[[T], K],
) -> list[T]:
    """Filter items down to those visible to ``tenant_id``.

    Status filtering is the caller's job and must happen before this call.

    Args:
        items: Candidate content items
        restrictions: Allow-listed distributor ids per item key; a missing
            key is the same as an empty allow-list
        tenant_id: Distributor to resolve for, or None for "no tenant"
        key: Extracts the restriction key from an item

    Returns:
        Visible items in their original order
    """
    if tenant_id is None:
        return []
    return [item for item in items if is_visible(restrictions.get(key(item), ()), tenant_id)]


def is_release_visible(
    target_type: str,
    distributor_ids: Collection[UUID],
    device_ids: Collection[UUID],
    tenant_id: UUID | None,
    tenant_device_ids: Collection[UUID] = (),
) -> bool:
    """Whether a release is visible to a tenant.

    Args:
        target_type: The release's declared audience
        distributor_ids: Distributor allow-list rows of the release
        device_ids: Device allow-list rows of the release
        tenant_id: Distributor to resolve for, or None for "no tenant"
        tenant_device_ids: Devices owned by the tenant (through its customers)
    """
    if tenant_id is None:
        return False
    if tenant_id in distributor_ids:
        return True
    if any(device_id in device_ids for device_id in tenant_device_ids):
        return True
    return not distributor_ids and not device_ids and target_type == TargetType.ALL.value


def entitled_distributors(
    target_type: str,
    distributor_ids: Collection[UUID],
    device_owner_ids: Collection[UUID],
    active_distributor_ids: Collection[UUID],
) -> set[UUID]:
    """Every distributor entitled to a release.

    The union of directly listed distributors and owners of listed devices.
    When neither list has rows and the release targets everyone, every
    active distributor is entitled.

    Args:
        target_type: The release's declared audience
        distributor_ids: Distributor allow-list rows of the release
        device_owner_ids: Owning distributors of the allow-listed devices
        active_distributor_ids: All distributors currently active
    """
    entitled = set(distributor_ids) | set(device_owner_ids)
    if not distributor_ids and not device_owner_ids and target_type == TargetType.ALL.value:
        entitled |= set(active_distributor_ids)
    return entitled


def is_update_applicable(
    *,
    release_type: str,
    release_version: str,
    release_product_id: UUID | None,
    device_product_id: UUID | None,
    firmware_version: str | None,
    software_version: str | None,
) -> bool:
    """Whether a visible release is an update for a specific device.

    Releases for a different product are skipped when both sides name a
    product. Firmware releases compare against the installed firmware
    version; every other release type compares against the software version.
    """
    if device_product_id and release_product_id and release_product_id != device_product_id:
        return False
    installed = firmware_version if release_type == "firmware" else software_version
    return is_newer(release_version, installed)
