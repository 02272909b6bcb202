"""
Services package for Reports module

Exports all report service classes for easy importing.
"""

from .sales import SalesReportService
from .inventory import InventoryReportService

__all__ = [
    "SalesReportService",
    "InventoryReportService",
]
