"""Release and content notification delivery and tracking."""

from .content import BatchSummary, ContentNotifier, NotifiableKind, PublishedItem
from .dispatcher import (
    BatchNotifier,
    NotificationSummary,
    Recipient,
    ReleaseNotifier,
    notify_release,
)
from .email import (
    DeliveryResult,
    EmailClient,
    LoggingEmailClient,
    ResendEmailClient,
    build_email_client,
)

__all__ = [
    "BatchNotifier",
    "BatchSummary",
    "ContentNotifier",
    "DeliveryResult",
    "EmailClient",
    "LoggingEmailClient",
    "NotifiableKind",
    "NotificationSummary",
    "PublishedItem",
    "Recipient",
    "ReleaseNotifier",
    "ResendEmailClient",
    "build_email_client",
    "notify_release",
]
