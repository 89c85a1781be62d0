"""Configuration module for the distributor portal."""

from distportal.config.settings import NotificationConfig, Settings, get_settings

__all__ = ["NotificationConfig", "Settings", "get_settings"]
