"""Shared utilities."""

from .exceptions import ConfigurationError, EmailDeliveryError, PortalError

__all__ = ["ConfigurationError", "EmailDeliveryError", "PortalError"]
