"""
Routers package for Reports module

Exports all report router instances for easy importing.
"""

from .sales import router as sales_router
from .inventory import router as inventory_router

__all__ = [
    "sales_router",
    "inventory_router",
]
