"""Notification and invitation email content."""

from html import escape
from typing import TYPE_CHECKING

from distportal.db.models.release import SoftwareRelease

if TYPE_CHECKING:
    from distportal.notifications.content import PublishedItem

# Headline and portal page per notifiable kind
_CONTENT_COPY = {
    "products": ("New Product", "/portal/products"),
    "training_materials": ("New Training Available", "/portal/training"),
    "marketing_assets": ("New Marketing Asset", "/portal/marketing"),
    "documentation": ("New Documentation", "/portal/docs"),
    "announcements": ("New Announcement", "/portal"),
}


def release_subject(release: SoftwareRelease) -> str:
    return f"New {release.release_type} Release: {release.name} v{release.version}"


def release_html(release: SoftwareRelease, recipient_name: str, portal_base_url: str) -> str:
    """Render the HTML body announcing a release to one recipient.

    Args:
        release: The release being announced
        recipient_name: Greeting name (user's full name or company name)
        portal_base_url: Base URL of the portal UI for the call-to-action link
    """
    product_info = f" for {escape(release.product_name)}" if release.product_name else ""
    notes = ""
    if release.release_notes:
        notes = (
            "<h4>Release Notes:</h4>"
            f'<p style="white-space: pre-wrap;">{escape(release.release_notes)}</p>'
        )
    link = f"{portal_base_url.rstrip('/')}/software-releases"

    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #00a8b5;">New Software Release Available</h2>'
        f"<p>Hello {escape(recipient_name)},</p>"
        f"<p>A new {escape(release.release_type)} release is now available{product_info}:</p>"
        '<div style="background: #f5f5f5; padding: 16px; border-radius: 8px; margin: 16px 0;">'
        f'<h3 style="margin: 0 0 8px 0;">{escape(release.name)}</h3>'
        f'<p style="margin: 0; color: #666;">Version: {escape(release.version)}</p>'
        "</div>"
        f"{notes}"
        f'<p><a href="{escape(link)}" style="display: inline-block; background: #00a8b5; '
        'color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px;">'
        "View Release</a></p>"
        '<p style="color: #666; font-size: 12px; margin-top: 32px;">'
        "This is an automated message from the Distributor Portal."
        "</p>"
        "</div>"
    )


def content_subject(item: "PublishedItem") -> str:
    headline, _ = _CONTENT_COPY[item.kind.value]
    return f"{headline}: {item.title}"


def content_html(item: "PublishedItem", recipient_name: str, portal_base_url: str) -> str:
    """Render the HTML body announcing newly published content to one recipient."""
    headline, page = _CONTENT_COPY[item.kind.value]
    link = f"{portal_base_url.rstrip('/')}{page}"
    if item.kind.value == "products":
        link = f"{link}/{item.item_id}"
    if item.link_url:
        link = item.link_url

    category = (
        f'<p style="margin: 0; color: #666;">{escape(item.category)}</p>' if item.category else ""
    )
    description = (
        f'<p style="white-space: pre-wrap;">{escape(item.description)}</p>'
        if item.description
        else ""
    )
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #00a8b5;">{escape(headline)}</h2>'
        f"<p>Hello {escape(recipient_name)},</p>"
        '<div style="background: #f5f5f5; padding: 16px; border-radius: 8px; margin: 16px 0;">'
        f'<h3 style="margin: 0 0 8px 0;">{escape(item.title)}</h3>'
        f"{category}"
        "</div>"
        f"{description}"
        f'<p><a href="{escape(link)}" style="display: inline-block; background: #00a8b5; '
        'color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px;">'
        f"{escape(item.link_label or 'View in Portal')}</a></p>"
        '<p style="color: #666; font-size: 12px; margin-top: 32px;">'
        "This is an automated message from the Distributor Portal."
        "</p>"
        "</div>"
    )


def invitation_subject(company_name: str) -> str:
    return f"You have been invited to the {company_name} Distributor Portal account"


def invitation_html(recipient_name: str, company_name: str, portal_base_url: str) -> str:
    """Render the invitation email sent when a user is added to a distributor."""
    link = f"{portal_base_url.rstrip('/')}/set-password"
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #00a8b5;">Welcome to the Distributor Portal</h2>'
        f"<p>Hello {escape(recipient_name)},</p>"
        f"<p>You have been invited to join <strong>{escape(company_name)}</strong>.</p>"
        f'<p><a href="{escape(link)}">Set your password</a> to get started.</p>'
        "</div>"
    )
