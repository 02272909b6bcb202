"""
Base service class for Reports module

Provides common functionality for all report services: business-timezone
day windows and the base queries over sales. Reports are read-only and
never commit.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.common.dates import utcnow, business_date, day_bounds_utc, range_bounds_utc
from app.modules.configuration.service import ConfigurationService
from app.modules.products.models import Product
from app.modules.sales.models import Sale


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session, tz_name: Optional[str] = None):
        self.db = db
        # Misma zona que usan los números de factura
        self.tz_name = tz_name or ConfigurationService(db).get_timezone()

    def _today(self, now: Optional[datetime] = None) -> date:
        """Current calendar day in the business timezone"""
        return business_date(now or utcnow(), self.tz_name)

    def _day_window(self, day: date) -> Tuple[datetime, datetime]:
        return day_bounds_utc(day, self.tz_name)

    def _range_window(self, start_date: date, end_date: date) -> Tuple[datetime, datetime]:
        return range_bounds_utc(start_date, end_date, self.tz_name)

    def _last_days_window(self, days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """Last `days` calendar days, today included"""
        today = self._today(now)
        return self._range_window(today - timedelta(days=days - 1), today)

    def _get_base_sale_query(self):
        return self.db.query(Sale)

    def _get_base_product_query(self):
        return self.db.query(Product)

    def _apply_window(self, query, start: datetime, end: datetime):
        """Apply [start, end) UTC window on the sale timestamp"""
        return query.filter(Sale.sold_at >= start, Sale.sold_at < end)
