"""Customers, their installed devices and device documents."""

from .customers import CustomerService, CustomerStats
from .devices import DeviceService, DeviceStats
from .documents import DocumentService
from .versions import compare_versions, increment_version, is_newer

__all__ = [
    "CustomerService",
    "CustomerStats",
    "DeviceService",
    "DeviceStats",
    "DocumentService",
    "compare_versions",
    "increment_version",
    "is_newer",
]
