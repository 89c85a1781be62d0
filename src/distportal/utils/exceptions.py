"""Custom exceptions for the distributor portal."""


class PortalError(Exception):
    """Base exception for all portal errors."""

    pass


class EmailDeliveryError(PortalError):
    """Error raised by an email provider call."""

    pass


class ConfigurationError(PortalError):
    """Error in configuration or settings."""

    pass
