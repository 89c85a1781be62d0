"""Closed mapping from content kinds to their tables."""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from distportal.db.models.base import Base
from distportal.db.models.content import (
    Announcement,
    AnnouncementDistributor,
    Documentation,
    DocumentationDistributor,
    MarketingAsset,
    MarketingAssetDistributor,
    TrainingMaterial,
    TrainingMaterialDistributor,
)


class ContentKind(str, Enum):
    """Kinds of distributor-shareable content with a distributor allow-list."""

    TRAINING_MATERIALS = "training_materials"
    MARKETING_ASSETS = "marketing_assets"
    DOCUMENTATION = "documentation"
    ANNOUNCEMENTS = "announcements"


@dataclass(frozen=True)
class ContentBinding:
    """Fixed model and allow-list table for one content kind.

    ``key`` names both the primary key on the content model and the
    content foreign key on the junction model.
    """

    kind: ContentKind
    model: type[Base]
    junction: type[Base]
    key: str

    @property
    def pk(self) -> Any:
        return getattr(self.model, self.key)

    @property
    def junction_content_id(self) -> Any:
        return getattr(self.junction, self.key)

    @property
    def junction_distributor_id(self) -> Any:
        return self.junction.distributor_id

    def identify(self, item: Base) -> UUID:
        """Primary key value of a content instance."""
        return getattr(item, self.key)

    def allow_row(self, content_id: UUID, distributor_id: UUID) -> Base:
        """New junction row granting one distributor access."""
        return self.junction(**{self.key: content_id, "distributor_id": distributor_id})


CONTENT_BINDINGS: dict[ContentKind, ContentBinding] = {
    ContentKind.TRAINING_MATERIALS: ContentBinding(
        ContentKind.TRAINING_MATERIALS,
        TrainingMaterial,
        TrainingMaterialDistributor,
        "training_id",
    ),
    ContentKind.MARKETING_ASSETS: ContentBinding(
        ContentKind.MARKETING_ASSETS,
        MarketingAsset,
        MarketingAssetDistributor,
        "asset_id",
    ),
    ContentKind.DOCUMENTATION: ContentBinding(
        ContentKind.DOCUMENTATION,
        Documentation,
        DocumentationDistributor,
        "documentation_id",
    ),
    ContentKind.ANNOUNCEMENTS: ContentBinding(
        ContentKind.ANNOUNCEMENTS,
        Announcement,
        AnnouncementDistributor,
        "announcement_id",
    ),
}


def binding_for(kind: ContentKind | str) -> ContentBinding:
    """Look up the binding for a kind.

    Raises:
        ValueError: If ``kind`` is not a known content kind
    """
    return CONTENT_BINDINGS[ContentKind(kind)]
