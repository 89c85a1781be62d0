"""Content sharing: allow-list visibility resolution and management."""

from .service import ContentSharingService, SharingSummary, VisibilityService, summarize_sharing
from .types import CONTENT_BINDINGS, ContentBinding, ContentKind, binding_for
from .visibility import (
    entitled_distributors,
    is_release_visible,
    is_update_applicable,
    is_visible,
    resolve_visible,
)

__all__ = [
    "CONTENT_BINDINGS",
    "ContentBinding",
    "ContentKind",
    "ContentSharingService",
    "SharingSummary",
    "VisibilityService",
    "binding_for",
    "entitled_distributors",
    "is_release_visible",
    "is_update_applicable",
    "is_visible",
    "resolve_visible",
    "summarize_sharing",
]
