"""
Inventory Reports Service

Low stock alerts over the live product stock.
"""

from decimal import Decimal
from typing import Dict, Optional

from .base import BaseReportService
from app.common.money import to_decimal
from app.core.config import settings
from app.modules.products.models import Product


class InventoryReportService(BaseReportService):
    """Service for generating inventory reports"""

    def get_low_stock(self, threshold: Optional[Decimal] = None, limit: int = 100) -> Dict:
        """
        Productos con stock menor o igual al umbral, los más críticos primero.
        """
        threshold = to_decimal(threshold if threshold is not None else settings.LOW_STOCK_THRESHOLD)
        query = self._get_base_product_query().filter(Product.stock <= threshold)
        total = query.count()
        products = query.order_by(Product.stock.asc(), Product.name_lower.asc()).limit(limit).all()

        return {
            "threshold": threshold,
            "total_products": total,
            "products": [
                {
                    "product_id": product.id,
                    "code": product.code,
                    "name": product.name,
                    "unit": product.unit,
                    "stock": product.stock,
                }
                for product in products
            ],
        }
