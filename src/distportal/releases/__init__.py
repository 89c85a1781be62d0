"""Software release lifecycle and targeting."""

from .service import PublishResult, ReleaseService, ReleaseStats

__all__ = ["PublishResult", "ReleaseService", "ReleaseStats"]
